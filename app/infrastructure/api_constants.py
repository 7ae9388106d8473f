"""
API endpoint constants and configuration.

This module contains the statistics service endpoint paths and related constants.
The paths and field names must match the deployed statistics service.
"""


# Statistics Service Endpoints
class StatsServiceEndpoints:
    """Remote statistics service endpoint paths."""

    API_BASE = "/api"

    EXTRACT_POINT_STATS = f"{API_BASE}/extract-point-stats"


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"
    CONTENT_TYPE_CSV = "text/csv; charset=utf-8"

    # Upstream error payload key
    ERROR_FIELD = "error"
