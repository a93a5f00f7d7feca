"""
sd-showcase - Prompt, image and speech relay for a Stable Diffusion backend

This package turns user-facing generation settings (resolution, quality and
style tiers, model choice) into requests for a locally hosted
Stable-Diffusion-compatible API, and relays prompt suggestions and speech
from a hosted language model.

Main Components:
    - GenerationAdapter: one image, or the same prompt on two models
    - PromptRelay / SpeechRelay: streamed prompt suggestions and MP3 speech
    - server.app: FastAPI application exposing all of the above

Example:
    >>> import asyncio
    >>> from sd_showcase.core import GenerationAdapter
    >>> from sd_showcase.request_builder import GenerationRequest
    >>> async def main():
    ...     async with GenerationAdapter() as adapter:
    ...         return await adapter.generate(GenerationRequest(prompt="a cat on mars"))
    >>> result = asyncio.run(main())
"""

__version__ = "0.1.0"
