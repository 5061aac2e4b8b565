"""
Repository layer exports.
"""

from db.repositories.errors import InvalidProfilePayloadError, LoadProfileRepositoryError
from db.repositories.load_profile_repository import LoadProfileRepository, record_to_profile

__all__ = [
    "LoadProfileRepository",
    "record_to_profile",
    "LoadProfileRepositoryError",
    "InvalidProfilePayloadError",
]
