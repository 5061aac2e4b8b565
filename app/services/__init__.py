"""
app/services package marker.
"""

from app.services.batch_processor import (
    BatchItem,
    BatchItemResult,
    BatchItemStatus,
    BatchProcessor,
    BatchSummary,
    CancellationToken,
)
from app.services.load_profile_service import (
    LoadProfilePersistenceError,
    LoadProfileProcessingError,
    LoadProfileService,
    get_load_profile_service,
)

__all__ = [
    "BatchItem",
    "BatchItemResult",
    "BatchItemStatus",
    "BatchProcessor",
    "BatchSummary",
    "CancellationToken",
    "LoadProfilePersistenceError",
    "LoadProfileProcessingError",
    "LoadProfileService",
    "get_load_profile_service",
]
