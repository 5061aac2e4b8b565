"""
app/schemas package marker.
"""

from app.schemas.load_profile import (
    FormatDetectionResponse,
    LoadProfileResponse,
    ParsedPreviewResponse,
    ProcessedLoadProfileResponse,
)

__all__ = [
    "FormatDetectionResponse",
    "LoadProfileResponse",
    "ParsedPreviewResponse",
    "ProcessedLoadProfileResponse",
]
