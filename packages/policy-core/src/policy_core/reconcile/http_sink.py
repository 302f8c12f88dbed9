"""HTTP sink for the limiter service configuration API."""

from dataclasses import dataclass

import httpx
from pydantic import BaseModel, Field

from policy_core.ratelimit.filter_config import serialize_artifact
from policy_core.ratelimit.limits import LimiterCounterDefinition

LIMITS_ENDPOINT = "/api/v1/limits"


class LimitsDocument(BaseModel):
    """Body of the limits endpoint, for both GET responses and PUT requests."""

    limits: list[LimiterCounterDefinition] = Field(
        default_factory=list, description="Counter definitions"
    )


@dataclass
class HttpLimiterSink:
    """
    Limiter configuration API client with injected httpx client.

    Reads and replaces the full set of counter definitions of the limiter
    service.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to the
            limiter service.

    Example:
        async with httpx.AsyncClient(base_url="http://ratelimit-service:8080") as http:
            sink = HttpLimiterSink(http=http)
            deployed = await sink.read_limits()
    """

    http: httpx.AsyncClient

    async def read_limits(self) -> list[LimiterCounterDefinition]:
        """
        Get the deployed counter definitions.

        Calls GET /api/v1/limits.

        Returns:
            List of LimiterCounterDefinition.

        Raises:
            httpx.HTTPStatusError: On HTTP errors (4xx, 5xx responses).
            pydantic.ValidationError: On malformed response data.
        """
        response = await self.http.get(LIMITS_ENDPOINT)
        response.raise_for_status()

        data = LimitsDocument.model_validate(response.json())
        return data.limits

    async def write_limits(self, limits: list[LimiterCounterDefinition]) -> None:
        """
        Replace the deployed counter definitions.

        Calls PUT /api/v1/limits with the full list.

        Raises:
            ArtifactSerializationError: If the definitions cannot be encoded.
            httpx.HTTPStatusError: On HTTP errors (4xx, 5xx responses).
        """
        content = serialize_artifact("limits", LimitsDocument(limits=limits))
        response = await self.http.put(
            LIMITS_ENDPOINT,
            content=content,
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
