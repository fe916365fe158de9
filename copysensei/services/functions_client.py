"""
HTTP client for the remote generate-copy and fetch-research functions.
"""

from typing import Any, Optional

import httpx
import structlog

from copysensei.core.config import settings
from copysensei.core.exceptions import RemoteServiceError

logger = structlog.get_logger(__name__)


class FunctionsClient:
    """
    Invokes the serverless functions with JSON bodies.

    Every failure mode (transport error, non-2xx, undecodable body, missing
    field) surfaces as RemoteServiceError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.functions_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.functions_api_key
        self.timeout = timeout or settings.functions_timeout
        self._transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    async def invoke(self, name: str, body: dict) -> dict:
        """POST a JSON body to a named function and return the decoded JSON."""
        url = f"{self.base_url}/{name}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=body, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error(
                "Function returned an error",
                function=name,
                status_code=e.response.status_code,
                body=e.response.text[:500],
            )
            raise RemoteServiceError(
                f"{name} failed with HTTP {e.response.status_code}: {detail}",
                upstream_status=e.response.status_code,
            )
        except httpx.RequestError as e:
            logger.error("Failed to reach function", function=name, error=str(e))
            raise RemoteServiceError(f"Could not reach {name}: {e}")

        try:
            payload = response.json()
        except ValueError:
            raise RemoteServiceError(f"{name} returned a non-JSON body")

        if not isinstance(payload, dict):
            raise RemoteServiceError(f"{name} returned an unexpected payload")
        if payload.get("error"):
            raise RemoteServiceError(f"{name} failed: {payload['error']}")
        return payload

    async def generate_copy(self, messages: list[dict], context: dict) -> str:
        """Run generate-copy and return the generated text."""
        payload = await self.invoke("generate-copy", {"messages": messages, "context": context})
        generated = payload.get("generatedCopy")
        if not isinstance(generated, str) or not generated.strip():
            raise RemoteServiceError("generate-copy returned no generatedCopy")
        return generated

    async def fetch_research(self, website_url: str, project_name: Optional[str] = None) -> Any:
        """Run fetch-research and return the research payload."""
        payload = await self.invoke(
            "fetch-research",
            {"websiteUrl": website_url, "projectName": project_name},
        )
        research = payload.get("researchData")
        if not research:
            raise RemoteServiceError("fetch-research returned no researchData")
        return research


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text[:200]
