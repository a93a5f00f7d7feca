"""
Module: sd_showcase.errors
Purpose: Error taxonomy for the generation adapter and relays

Every error raised by the adapter derives from ShowcaseError so the HTTP
layer can render all of them as a JSON error payload with a 500 status.
None of these are retried.
"""

from typing import Optional


class ShowcaseError(Exception):
    """Base class for all adapter and relay failures."""


class ValidationError(ShowcaseError):
    """Malformed caller input (resolution string, model key, messages)."""


class FetchError(ShowcaseError):
    """The init image could not be retrieved from its URL."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Failed to fetch image from URL {url}: {message}")


class BackendUnavailable(ShowcaseError):
    """
    The diffusion backend could not be reached or refused the request.

    Attributes:
        status_code: Upstream HTTP status, None for transport failures
        message: Upstream message body or transport error text
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        self.message = message
        if status_code is not None:
            super().__init__(f"status: {status_code}, message: {message}")
        else:
            super().__init__(message)


class BackendError(BackendUnavailable):
    """A generation call (txt2img/img2img) returned a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message, status_code=status_code)


class EmptyResultError(ShowcaseError):
    """The backend answered 200 but returned no images."""

    def __init__(self, message: str = "No image generated"):
        super().__init__(message)


class RelayError(ShowcaseError):
    """The hosted language-model or speech provider failed."""
