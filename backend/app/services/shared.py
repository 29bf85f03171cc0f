"""
Shared service instances to ensure consistency across API endpoints.

The AnalysisService is stateless, so one instance (and one lint engine) is
shared by every request. It is created lazily so that importing the API does
not require the configured engine to be available.
"""

from typing import Optional

from .analysis_service import AnalysisService

_analysis_service: Optional[AnalysisService] = None


def get_analysis_service() -> AnalysisService:
    """Get or create the global AnalysisService instance."""
    global _analysis_service
    if _analysis_service is None:
        _analysis_service = AnalysisService()
    return _analysis_service


__all__ = ["get_analysis_service"]
