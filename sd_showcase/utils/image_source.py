"""
Module: sd_showcase.utils.image_source
Purpose: Turn an init-image reference into the base64 payload img2img expects
Dependencies: httpx
"""

import base64
import logging

import httpx

from sd_showcase.errors import FetchError, ValidationError

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image"


def is_data_uri(reference: str) -> bool:
    """True when the reference is an inline data:image URI."""
    return reference.startswith(DATA_URI_PREFIX)


def strip_data_uri(reference: str) -> str:
    """
    Drop the "data:image/...;base64," header and return the payload.

    Raises:
        ValidationError: If the URI has no payload separator
    """
    _, sep, payload = reference.partition(",")
    if not sep:
        raise ValidationError("Malformed data URI: missing ',' separator")
    return payload


async def resolve_init_image(
    client: httpx.AsyncClient,
    reference: str,
    timeout: float = 120.0,
) -> str:
    """
    Resolve an init image reference to a raw base64 payload.

    Inline data URIs are stripped locally. Anything else is fetched exactly
    once as a URL and its bytes are base64-encoded.

    Args:
        client: HTTP client used for URL references
        reference: data URI or URL
        timeout: Fetch timeout in seconds

    Returns:
        Base64 payload without any URI header

    Raises:
        FetchError: The URL could not be fetched or answered non-2xx
    """
    if is_data_uri(reference):
        return strip_data_uri(reference)

    logger.info(f"Fetching init image from {reference}")
    try:
        response = await client.get(reference, timeout=timeout)
    except httpx.HTTPError as e:
        raise FetchError(reference, str(e))

    if not response.is_success:
        raise FetchError(reference, f"{response.status_code} {response.reason_phrase}")

    content_type = response.headers.get("content-type", "unknown")
    logger.debug(f"Fetched {len(response.content)} bytes ({content_type})")
    return base64.b64encode(response.content).decode("ascii")
