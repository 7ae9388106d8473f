"""
Infrastructure layer: Client for the remote point statistics service.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

from pydantic import BaseModel, ValidationError
import httpx

from app.config import settings
from app.domain.errors import ExtractionFailed, ExtractionPreconditionError
from app.domain.models import PointStatistic, SamplePoint
from app.infrastructure.api_constants import APIConstants, StatsServiceEndpoints

logger = logging.getLogger(__name__)


# Pydantic models for the service contract
class PointPayload(BaseModel):
    """Sample point as sent to the statistics service."""
    id: int
    lat: float
    lng: float


class PointStatsRequest(BaseModel):
    """Body of the extract-point-stats request."""
    points: List[PointPayload]
    geometry: Dict[str, Any]


class PointStatsResponse(BaseModel):
    """Response from the extract-point-stats endpoint."""
    stats: List[PointStatistic]


class StatsExtractionClient:
    """
    Client for the remote statistics service.

    Makes exactly one request per extraction; retry policy, if any, belongs
    to the caller.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the client with configuration."""
        self.base_url = base_url or settings.stats_service_base_url
        self.api_key = api_key if api_key is not None else settings.stats_service_api_key

        headers = {"accept": APIConstants.CONTENT_TYPE_JSON}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout or settings.stats_service_timeout,
        )

    async def __aenter__(self) -> "StatsExtractionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @staticmethod
    def _upstream_message(response: httpx.Response) -> str:
        """Pull the error message out of an upstream error response."""
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, Mapping) and body.get(APIConstants.ERROR_FIELD):
            return str(body[APIConstants.ERROR_FIELD])
        return response.text

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Any:
        """
        Make a single POST request.

        Args:
            endpoint: API endpoint path
            payload: JSON body

        Returns:
            Decoded JSON response

        Raises:
            ExtractionFailed: On transport errors, non-2xx status or non-JSON body
        """
        try:
            response = await self.client.post(endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise ExtractionFailed(
                f"Statistics service returned {status_code}: {self._upstream_message(e.response)}",
                retryable=status_code >= 500,
            )
        except httpx.RequestError as e:
            raise ExtractionFailed(f"Statistics service request error: {str(e)}", retryable=True)

        try:
            return response.json()
        except ValueError:
            raise ExtractionFailed("Statistics service returned a body that is not JSON")

    async def extract_stats(
        self,
        points: Sequence[SamplePoint],
        roi_geometry: Mapping[str, Any],
    ) -> List[PointStatistic]:
        """
        Extract raster statistics for sample points.

        Args:
            points: Sample points to query
            roi_geometry: ROI as a GeoJSON geometry

        Returns:
            List of PointStatistic in response order

        Raises:
            ExtractionPreconditionError: If no points are given
            ExtractionFailed: If the request fails or the response is malformed
        """
        if not points:
            raise ExtractionPreconditionError("Generate a sample grid before extracting statistics")

        request = PointStatsRequest(
            points=[PointPayload(id=p.id, lat=p.lat, lng=p.lng) for p in points],
            geometry=dict(roi_geometry),
        )

        logger.info(f"Requesting statistics for {len(points)} points")
        data = await self._post(StatsServiceEndpoints.EXTRACT_POINT_STATS, request.model_dump())

        try:
            response = PointStatsResponse.model_validate(data)
        except ValidationError as e:
            raise ExtractionFailed(
                f"Malformed statistics response: {e.error_count()} validation error(s)"
            )

        logger.info(f"Received statistics for {len(response.stats)} points")
        return response.stats


# Singleton instance
_stats_client: Optional[StatsExtractionClient] = None


def get_stats_client() -> StatsExtractionClient:
    """
    Get or create the singleton statistics client instance.

    Returns:
        StatsExtractionClient instance
    """
    global _stats_client
    if _stats_client is None:
        _stats_client = StatsExtractionClient()
    return _stats_client
