"""Shared failure code constants for load-profile error handling."""

CRITICAL_FAILURES = [
    "invalid_unit",
    "invalid_config",
    "persistence_error",
    "missing_meter_name",
]

RECONFIGURABLE_FAILURES = [
    "empty_profile",
    "validation_failure",
]
