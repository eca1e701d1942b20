"""
Breviago Backend — OpenFGA Authorization Service
=================================================

What:  Relationship-based permission checks against an OpenFGA store.
How:   Talks to the OpenFGA HTTP API with httpx:

           POST /stores/{store_id}/check   {"tuple_key": {...}} → {"allowed": bool}
           POST /stores/{store_id}/write   {"writes"|"deletes": {"tuple_keys": [...]}}
           GET  /stores/{store_id}         health probe

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter on transport errors,
       429 and 5xx responses
    2. Circuit breaker: after repeated failures checks fail fast with
       CircuitBreakerOpenError instead of waiting on timeouts
    3. 4xx responses are not retried and do not trip the breaker; the
       backend is up, the request was wrong
    4. Writes of an existing tuple and deletes of a missing one count as
       success, so retried or repeated tuple changes are idempotent

Error Handling Chain:
    call fails → tenacity retries (RETRY_MAX_ATTEMPTS)
    → still failing → breaker.record_failure() → AuthorizationServiceError (503)
    → CB_FAILURE_THRESHOLD reached → CircuitBreakerOpenError (503) until the
      recovery timeout passes
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from breviago.config import settings
from breviago.exceptions import AuthorizationServiceError
from breviago.services.authz_base import (
    AVAILABLE,
    CIRCUIT_OPEN,
    UNAVAILABLE,
    AuthorizationService,
)
from breviago.services.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

# OpenFGA answers 400 to writing an existing tuple or deleting an absent one.
# Both leave the store in the requested state, e.g. after a retried write.
DUPLICATE_TUPLE = "already exists"
MISSING_TUPLE = "does not exist"


class RetryableResponseError(Exception):
    """A 429/5xx answer from OpenFGA; worth another attempt."""

    def __init__(self, status_code: int):
        super().__init__(f"OpenFGA responded with HTTP {status_code}")
        self.status_code = status_code


class OpenFGAService(AuthorizationService):
    backend = "openfga"

    def __init__(
        self,
        api_url: Optional[str] = None,
        store_id: Optional[str] = None,
        model_id: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.api_url = (api_url or settings.openfga_api_url).rstrip("/")
        self.store_id = store_id if store_id is not None else settings.openfga_store_id
        self.model_id = model_id if model_id is not None else settings.openfga_model_id
        self.api_token = api_token if api_token is not None else settings.openfga_api_token
        self.timeout = timeout or settings.openfga_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            name="openfga",
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "OpenFGAService initialized: url=%s store=%s model=%s "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.api_url,
            self.store_id or "<unset>",
            self.model_id or "<latest>",
            self.circuit_breaker.failure_threshold,
            self.circuit_breaker.recovery_timeout,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        # Created lazily so the client binds to the running event loop
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.api_token:
                headers["Authorization"] = f"Bearer {self.api_token}"
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    # ── AuthorizationService API ──────────────────────────────────────────

    async def check(self, user: str, relation: str, obj: str, *, db=None) -> bool:
        body: Dict[str, Any] = {
            "tuple_key": {"user": user, "relation": relation, "object": obj},
        }
        if self.model_id:
            body["authorization_model_id"] = self.model_id

        data = await self._call(f"/stores/{self.store_id}/check", body, operation="check")
        allowed = bool(data.get("allowed", False))
        logger.debug("OpenFGA check %s %s %s → %s", user, relation, obj, allowed)
        return allowed

    async def write_relationship(self, user: str, relation: str, obj: str) -> None:
        body = self._tuple_body("writes", user, relation, obj)
        await self._call(
            f"/stores/{self.store_id}/write",
            body,
            operation="write",
            tolerated=DUPLICATE_TUPLE,
        )
        logger.info("OpenFGA tuple written: %s %s %s", user, relation, obj)

    async def delete_relationship(self, user: str, relation: str, obj: str) -> None:
        body = self._tuple_body("deletes", user, relation, obj)
        await self._call(
            f"/stores/{self.store_id}/write",
            body,
            operation="delete",
            tolerated=MISSING_TUPLE,
        )
        logger.info("OpenFGA tuple deleted: %s %s %s", user, relation, obj)

    async def health_check(self) -> str:
        """Probe the store without touching breaker state."""
        if self.circuit_breaker.seconds_until_retry() > 0:
            return CIRCUIT_OPEN
        try:
            response = await self.client.get(f"/stores/{self.store_id}")
        except httpx.HTTPError as e:
            logger.warning("OpenFGA health check failed: %s", type(e).__name__)
            return UNAVAILABLE
        if response.status_code != 200:
            logger.warning("OpenFGA health check returned HTTP %d", response.status_code)
            return UNAVAILABLE
        return AVAILABLE

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── Internals ─────────────────────────────────────────────────────────

    def _tuple_body(self, kind: str, user: str, relation: str, obj: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            kind: {"tuple_keys": [{"user": user, "relation": relation, "object": obj}]},
        }
        if self.model_id:
            body["authorization_model_id"] = self.model_id
        return body

    async def _call(
        self,
        path: str,
        body: Dict[str, Any],
        operation: str,
        tolerated: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        POST through the circuit breaker and retry policy.

        Raises:
            CircuitBreakerOpenError: breaker is open
            AuthorizationServiceError: OpenFGA unreachable or rejected the request
        """
        self.circuit_breaker.before_call()
        start_time = time.perf_counter()

        try:
            response = await self._post_with_retry(path, body)
        except (httpx.HTTPError, RetryableResponseError) as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "OpenFGA %s failed after %d attempts (%.0fms): %s",
                operation,
                settings.retry_max_attempts,
                (time.perf_counter() - start_time) * 1000,
                e,
            )
            raise AuthorizationServiceError(
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"operation": operation, "error_type": type(e).__name__},
            )

        # The dependency answered, whatever the status
        self.circuit_breaker.record_success()

        if response.status_code == 400 and tolerated and tolerated in response.text:
            logger.info("OpenFGA %s already applied: %s", operation, response.text[:200])
            return {}

        if response.status_code >= 400:
            logger.error(
                "OpenFGA %s rejected with HTTP %d: %s",
                operation,
                response.status_code,
                response.text[:200],
            )
            raise AuthorizationServiceError(
                context={"operation": operation, "status_code": response.status_code},
            )

        logger.debug(
            "OpenFGA %s completed in %.0fms",
            operation,
            (time.perf_counter() - start_time) * 1000,
        )
        return response.json() if response.content else {}

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, RetryableResponseError)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post_with_retry(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        response = await self.client.post(path, json=body)
        if response.status_code == 429 or response.status_code >= 500:
            raise RetryableResponseError(response.status_code)
        return response
