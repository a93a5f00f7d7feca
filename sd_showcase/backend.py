"""
Module: sd_showcase.backend
Purpose: HTTP transport for the Stable-Diffusion-compatible backend
Dependencies: httpx

Wraps the three endpoints the adapter uses (GET /samplers, POST /txt2img,
POST /img2img) and converts transport and status failures into the error
taxonomy. No retries are performed.
"""

from typing import Any, Dict, List, Optional
import logging

import httpx

from sd_showcase.config import Config, get_config
from sd_showcase.errors import BackendError, BackendUnavailable

logger = logging.getLogger(__name__)


class DiffusionBackend:
    """
    Thin client for the diffusion backend API.

    The HTTP client is injected so that one generation (or one comparison)
    shares a single connection pool, and so tests can mount a mock transport.

    Example:
        >>> async with httpx.AsyncClient() as client:
        ...     backend = DiffusionBackend(client)
        ...     names = await backend.list_samplers()
    """

    def __init__(self, client: httpx.AsyncClient, config: Optional[Config] = None):
        self.client = client
        self.config = config or get_config()

    @staticmethod
    def _decode(response: httpx.Response, what: str) -> Any:
        """Decode a JSON body, rejecting anything that is not JSON."""
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{what} returned a non-JSON body: {response.text[:200]!r}")
            raise BackendUnavailable(
                f"Malformed backend response from {what}: {e}",
                status_code=response.status_code,
            )

    async def list_samplers(self) -> List[str]:
        """
        Fetch the names of the samplers currently loaded by the backend.

        Raises:
            BackendUnavailable: Network error, timeout, non-2xx status or a
                body that is not a list of sampler objects
        """
        url = self.config.backend_url("samplers")
        try:
            response = await self.client.get(url, timeout=self.config.timeout)
        except httpx.HTTPError as e:
            logger.error(f"Sampler list request failed: {e}")
            raise BackendUnavailable(f"Failed to fetch samplers: {e}")

        if not response.is_success:
            logger.error(f"Sampler list request returned {response.status_code}")
            raise BackendUnavailable(
                f"Failed to fetch samplers: {response.reason_phrase}",
                status_code=response.status_code,
            )

        entries = self._decode(response, "samplers")
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise BackendUnavailable(
                "Malformed backend response from samplers: expected a list of objects",
                status_code=response.status_code,
            )
        return [entry["name"] for entry in entries if entry.get("name")]

    async def post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a generation request to txt2img or img2img.

        Args:
            endpoint: "txt2img" or "img2img"
            payload: Backend JSON body

        Returns:
            Decoded JSON object

        Raises:
            BackendError: Non-2xx status (carries status code and body)
            BackendUnavailable: Network error, timeout or a body that is not a JSON object
        """
        url = self.config.backend_url(endpoint)
        logger.info(f"POST {url}")
        try:
            response = await self.client.post(url, json=payload, timeout=self.config.timeout)
        except httpx.TimeoutException:
            raise BackendUnavailable(f"Backend {endpoint} timed out after {self.config.timeout}s")
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"Backend {endpoint} unreachable: {e}")

        if not response.is_success:
            raise BackendError(response.status_code, response.text)

        result = self._decode(response, endpoint)
        if not isinstance(result, dict):
            raise BackendUnavailable(
                f"Malformed backend response from {endpoint}: expected a JSON object",
                status_code=response.status_code,
            )
        return result
