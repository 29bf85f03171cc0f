"""
API endpoints for snippet analysis.

This module provides REST endpoints for analyzing a JavaScript snippet (JSON
body or file upload), plus a health check.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .._version import __version__
from ..config import config
from ..models.linting import LintIssue
from ..services.analysis_service import AnalysisService
from ..services.lesson_service import generate_lesson
from ..services.lint_engine import LintEngineError
from ..services.shared import get_analysis_service

logger = logging.getLogger(__name__)

router = APIRouter()

SUPPORTED_LANGUAGE = "javascript"
SERVICE_NAME = "Bug Whisperer API"

# Not every supported starlette release has status.HTTP_413_CONTENT_TOO_LARGE
HTTP_413_CONTENT_TOO_LARGE = 413


class AnalyzeRequest(BaseModel):
    """Request body for POST /api/analyze (fields validated by the endpoint)."""
    language: Optional[str] = None
    filename: Optional[str] = None
    code: Optional[str] = None


class AnalyzeResponse(BaseModel):
    """Analysis result plus the educational lesson."""
    issues: List[LintIssue] = Field(default_factory=list)
    fixed_code: str
    lesson: str


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


def _check_size(code: str) -> None:
    limit = config.get_max_code_bytes()
    size = len(code.encode("utf-8"))
    if size > limit:
        raise HTTPException(
            status_code=HTTP_413_CONTENT_TOO_LARGE,
            detail=f"Code is too large ({size} bytes, limit {limit})"
        )


async def _run_analysis(service: AnalysisService, filename: str, code: str):
    try:
        result = await service.analyze(filename, code)
    except LintEngineError as e:
        logger.error(f"❌ Analysis engine failure for {filename}: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error during code analysis",
                "details": str(e),
            }
        )

    lesson = generate_lesson(result.issues, code, result.fixed_code)
    logger.info(f"✅ Analysis completed for {filename}: {len(result.issues)} issue(s)")
    return AnalyzeResponse(issues=result.issues, fixed_code=result.fixed_code, lesson=lesson)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_code(
    request: AnalyzeRequest,
    service: AnalysisService = Depends(get_analysis_service),
):
    """
    Analyze a JavaScript snippet.

    Returns the located issues, the repaired code and a short lesson.
    """
    logger.info(
        f"🔍 Analyze request: filename={request.filename}, language={request.language}, "
        f"code_length={len(request.code or '')}"
    )

    if not request.language or not request.filename or not request.code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: language, filename, code"
        )

    if request.language != SUPPORTED_LANGUAGE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only JavaScript is supported in this MVP"
        )

    _check_size(request.code)
    return await _run_analysis(service, request.filename, request.code)


@router.get("/analyze")
async def analyze_status():
    """Confirm the analyze route is reachable."""
    return {
        "message": "Analyze API is working",
        "method": "GET",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/analyze/upload", response_model=AnalyzeResponse)
async def analyze_upload(
    file: UploadFile = File(...),
    language: str = Form(SUPPORTED_LANGUAGE),
    service: AnalysisService = Depends(get_analysis_service),
):
    """
    Analyze an uploaded JavaScript file.

    Undecodable bytes are replaced (U+FFFD) and surface as a parse failure.
    """
    if language != SUPPORTED_LANGUAGE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only JavaScript is supported in this MVP"
        )

    content = await file.read()
    limit = config.get_max_code_bytes()
    if len(content) > limit:
        raise HTTPException(
            status_code=HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File is too large ({len(content)} bytes, limit {limit})"
        )
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty"
        )

    filename = file.filename or "upload.js"
    code = content.decode("utf-8", errors="replace")
    logger.info(f"📁 Upload analysis: {filename} ({len(content)} bytes)")
    return await _run_analysis(service, filename, code)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint for monitoring."""
    return HealthResponse(status="OK", service=SERVICE_NAME, version=__version__)
