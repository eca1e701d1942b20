"""
Breviago Backend — Middleware Package
======================================

Request chain (outermost first):
    [Rate Limit] → [Request ID] → [Logging] → [Authentication] → [GZip] → [CORS] → route

Rate limiting rejects floods before any work is done. The request ID exists
before anything logs, so every log line and error body can carry it.
Authentication sits inside logging so rejected requests are still logged.
"""
