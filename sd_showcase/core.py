"""
Module: sd_showcase.core
Purpose: Generation adapter orchestrating one or two backend generations
Dependencies: httpx, asyncio

GenerationAdapter is the entry point used by both the HTTP server and the
CLI. A single generate() call runs:

    resolve sampler -> resolve init image -> build request -> POST -> unwrap

compare() fans out one generate() per model and joins them all-or-nothing.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional
import asyncio
import logging

import httpx

from sd_showcase.backend import DiffusionBackend
from sd_showcase.config import Config, get_config
from sd_showcase.errors import BackendUnavailable, EmptyResultError
from sd_showcase.request_builder import (
    GenerationRequest,
    ModelKey,
    build_backend_request,
    validate_request,
)
from sd_showcase.samplers import resolve_sampler
from sd_showcase.utils.image_source import resolve_init_image

logger = logging.getLogger(__name__)

PNG_DATA_URI_PREFIX = "data:image/png;base64,"

COMPARISON_MODELS = (ModelKey.SDXL.value, ModelKey.DREAMSHAPER.value)


@dataclass(frozen=True)
class GenerationResult:
    """
    One generated image.

    Attributes:
        image_data: PNG data URI
        model: Model key used
        sampler: Sampler the backend actually ran
        sampler_substituted: True when the requested sampler was unavailable
        endpoint: "txt2img" or "img2img"
    """
    image_data: str
    model: str
    sampler: str
    sampler_substituted: bool
    endpoint: str

    def to_dict(self) -> Dict[str, object]:
        """JSON shape returned by the HTTP surface."""
        return {
            "imageData": self.image_data,
            "model": self.model,
            "sampler": self.sampler,
            "samplerSubstituted": self.sampler_substituted,
        }


class GenerationAdapter:
    """
    Orchestrates image generation against the diffusion backend.

    The adapter owns its HTTP client unless one is injected; use it as an
    async context manager so the client is closed afterwards.

    Attributes:
        config: Configuration instance
        client: httpx.AsyncClient shared by backend calls and image fetches
        backend: DiffusionBackend wrapper around the client

    Example:
        >>> async with GenerationAdapter() as adapter:
        ...     result = await adapter.generate(
        ...         GenerationRequest(prompt="a cat", size="1024x1024")
        ...     )
        >>> result.image_data[:22]
        'data:image/png;base64,'
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the adapter.

        Args:
            config: Configuration override (None = global config)
            client: HTTP client to use (None = create and own one)
        """
        self.config = config or get_config()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.config.timeout)
        self.backend = DiffusionBackend(self.client, self.config)

    async def __aenter__(self) -> "GenerationAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self.client.aclose()

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Generate one image.

        Args:
            request: Generation parameters

        Returns:
            GenerationResult holding the first image as a PNG data URI

        Raises:
            ValidationError: Malformed size or unknown model (before any network call)
            BackendUnavailable: Sampler list or generation call unreachable
            FetchError: Init image URL could not be fetched
            BackendError: Generation call returned non-2xx
            EmptyResultError: Backend answered without images
        """
        validate_request(request)
        logger.info(f"Generating image with {request.model}: {request.prompt[:50]}...")

        sampler = await resolve_sampler(
            self.backend,
            request.sampler or self.config.backend["default_sampler"],
            fallback=self.config.backend["fallback_sampler"],
        )

        init_payload = None
        if request.init_image:
            init_payload = await resolve_init_image(
                self.client, request.init_image, timeout=self.config.timeout
            )

        resolved = build_backend_request(
            request,
            sampler.name,
            init_image=init_payload,
            default_denoising_strength=self.config.img2img["denoising_strength"],
        )

        result = await self.backend.post(resolved.endpoint, resolved.to_payload())

        images = result.get("images") or []
        if not isinstance(images, list) or not all(isinstance(image, str) for image in images):
            raise BackendUnavailable(
                f"Malformed backend response from {resolved.endpoint}: images is not a list of strings"
            )
        if not images:
            raise EmptyResultError()

        logger.info(f"Successfully generated image with {request.model}")
        return GenerationResult(
            image_data=f"{PNG_DATA_URI_PREFIX}{images[0]}",
            model=request.model,
            sampler=sampler.name,
            sampler_substituted=sampler.substituted,
            endpoint=resolved.endpoint,
        )

    async def compare(
        self,
        request: GenerationRequest,
        models: Iterable[str] = COMPARISON_MODELS,
        samplers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, GenerationResult]:
        """
        Generate the same prompt with several models concurrently.

        Either every generation succeeds or the first failure is raised; the
        remaining generations are cancelled and their results discarded.

        Args:
            request: Shared generation parameters
            models: Model keys to run (default: sdxl and dreamshaper)
            samplers: Optional per-model sampler override

        Returns:
            Mapping of model key to GenerationResult
        """
        samplers = samplers or {}
        models = list(models)
        logger.info(f"Comparing {len(models)} models: {', '.join(models)}")

        variants = [
            request.replace(model=model, sampler=samplers.get(model, request.sampler))
            for model in models
        ]
        tasks = [asyncio.ensure_future(self.generate(variant)) for variant in variants]

        try:
            results = await asyncio.gather(*tasks)
        except Exception as e:
            logger.error(f"Comparison failed: {e}")
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return dict(zip(models, results))
