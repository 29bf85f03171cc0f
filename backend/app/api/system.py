"""
System information API endpoints.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from .._version import __version__, __release_date__
from ..config import config

router = APIRouter()


class VersionResponse(BaseModel):
    """Response model for version information."""
    version: str
    release_date: str


class EngineResponse(BaseModel):
    """Response model for the configured lint engine."""
    engine: str
    quote_style: str


@router.get("/version", response_model=VersionResponse)
async def get_version():
    """
    Get the current Bug Whisperer backend version and release date.

    Returns:
        VersionResponse: Current version information including release date
    """
    return VersionResponse(version=__version__, release_date=__release_date__)


@router.get("/engine", response_model=EngineResponse)
async def get_engine():
    """Get the configured lint engine and quote style."""
    return EngineResponse(engine=config.get_lint_engine(), quote_style=config.get_quote_style())
