"""Public greeting at the root and at the API prefix."""

from fastapi import APIRouter

from breviago import __version__
from breviago.schemas.common import IndexResponse

router = APIRouter(tags=["Index"])


def _greeting() -> IndexResponse:
    return IndexResponse(message="Welcome to Breviago", name="breviago", version=__version__)


@router.get("/", response_model=IndexResponse, summary="Service greeting")
async def index() -> IndexResponse:
    return _greeting()


@router.get("/api/v1/", response_model=IndexResponse, summary="API greeting")
async def api_index() -> IndexResponse:
    return _greeting()


@router.get("/api/v1", response_model=IndexResponse, include_in_schema=False)
async def api_index_no_slash() -> IndexResponse:
    return _greeting()
