"""
Module: sd_showcase.server
Purpose: FastAPI REST server for image generation, prompt and speech relays
Dependencies: fastapi, uvicorn, pydantic

Routes:
    POST /api/generate-image  one image via the generation adapter
    POST /api/compare         same prompt on SDXL and Dreamshaper, all-or-nothing
    POST /api/chat            streamed prompt suggestions
    POST /api/tts             MP3 speech for a text
    GET  /api/samplers        samplers loaded by the backend
    GET  /api/models          model keys, checkpoints and prompt categories
    GET  /api/painting-themes art styles offered by the painting prompt flow

Every failure is answered with {"error": "..."} and status 500.
"""

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import Any, AsyncIterator, List, Optional
import logging

from sd_showcase import __version__
from sd_showcase.config import get_config
from sd_showcase.core import GenerationAdapter
from sd_showcase.errors import ShowcaseError
from sd_showcase.relay import (
    MODEL_CATEGORIES,
    MODEL_LABELS,
    PAINTING_THEMES,
    PromptRelay,
    SpeechRelay,
)
from sd_showcase.request_builder import CHECKPOINTS, GenerationRequest

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="sd-showcase API",
    description="Prompt, image and speech relay in front of a Stable Diffusion backend",
    version=__version__,
)


# Dependencies: one adapter/relay per request, nothing shared across requests
async def get_adapter() -> AsyncIterator[GenerationAdapter]:
    """Yield a GenerationAdapter that owns a fresh HTTP client."""
    async with GenerationAdapter(get_config()) as adapter:
        yield adapter


def get_prompt_relay() -> PromptRelay:
    return PromptRelay(get_config())


def get_speech_relay() -> SpeechRelay:
    return SpeechRelay(get_config())


# Request/Response models
class GenerateImageRequest(BaseModel):
    """Request model for single image generation."""
    model_config = ConfigDict(
        populate_by_name=True,
        protected_namespaces=(),
        json_schema_extra={
            "example": {
                "prompt": "a serene mountain landscape at sunset",
                "size": "1024x1024",
                "quality": "standard",
                "style": "vivid",
                "model": "sdxl",
            }
        },
    )

    prompt: str = Field(..., description="Text description of the image to generate")
    size: str = Field("1024x1024", description="Resolution as WxH")
    quality: str = Field("standard", description="standard (30 steps) or hd (50 steps)")
    style: str = Field("vivid", description="vivid (cfg 7.5) or natural (cfg 7.0)")
    model: str = Field("sdxl", description="sdxl or dreamshaper")
    init_image: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("initImage", "init_image"),
        description="URL or data URI; selects image-to-image",
    )
    steps: Optional[int] = Field(None, description="Explicit steps, overrides quality")
    cfg_scale: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("cfg_scale", "cfgScale"),
        description="Explicit guidance, overrides style",
    )
    sampler: Optional[str] = Field(None, description="Sampler name")
    denoising_strength: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("denoising_strength", "denoisingStrength"),
        description="Image-to-image strength (default 0.75)",
    )

    def to_generation_request(self, **changes: Any) -> GenerationRequest:
        request = GenerationRequest(
            prompt=self.prompt,
            size=self.size,
            quality=self.quality,
            style=self.style,
            model=self.model,
            sampler=self.sampler,
            steps=self.steps,
            cfg_scale=self.cfg_scale,
            denoising_strength=self.denoising_strength,
            init_image=self.init_image,
        )
        return request.replace(**changes) if changes else request


class CompareRequest(GenerateImageRequest):
    """Request model for a dual-model comparison."""
    sdxl_sampler: Optional[str] = Field(
        None, validation_alias=AliasChoices("sdxlSampler", "sdxl_sampler")
    )
    dreamshaper_sampler: Optional[str] = Field(
        None, validation_alias=AliasChoices("dreamshaperSampler", "dreamshaper_sampler")
    )


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    """Request model for streamed prompt suggestions."""
    model_config = ConfigDict(protected_namespaces=())

    messages: List[ChatMessage]
    model: Optional[str] = None
    category: Optional[str] = None


class SpeechRequest(BaseModel):
    """Request model for speech synthesis."""
    text: str
    voice: Optional[str] = None


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    backend_url: str
    backend_reachable: bool
    sampler_count: int = 0


def error_response(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render body validation failures like every other error on this API."""
    logger.error(f"Invalid request to {request.url.path}: {exc.errors()}")
    return error_response(f"Invalid request: {exc.errors()}")


@app.exception_handler(ShowcaseError)
async def showcase_exception_handler(request: Request, exc: ShowcaseError):
    logger.error(f"Request to {request.url.path} failed: {exc}")
    return error_response(str(exc))


# API Routes
@app.get("/", response_model=dict)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "sd-showcase API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", response_model=HealthResponse)
async def health(adapter: GenerationAdapter = Depends(get_adapter)):
    """
    Health check endpoint.

    Reports whether the diffusion backend answers its sampler listing.
    """
    base_url = adapter.config.backend["base_url"]
    try:
        samplers = await adapter.backend.list_samplers()
    except ShowcaseError as e:
        logger.error(f"Health check failed: {e}")
        return HealthResponse(status="degraded", backend_url=base_url, backend_reachable=False)

    return HealthResponse(
        status="healthy",
        backend_url=base_url,
        backend_reachable=True,
        sampler_count=len(samplers),
    )


@app.get("/api/samplers")
async def list_samplers(adapter: GenerationAdapter = Depends(get_adapter)):
    """List sampler names currently loaded by the backend."""
    try:
        samplers = await adapter.backend.list_samplers()
    except ShowcaseError as e:
        logger.error(f"Sampler listing failed: {e}")
        return error_response(f"Error listing samplers: {e}")
    return {"samplers": samplers}


@app.get("/api/models")
async def list_models():
    """List supported model keys with their checkpoints and prompt categories."""
    return {
        "models": [
            {
                "id": key.value,
                "label": MODEL_LABELS[key.value],
                "checkpoint": checkpoint,
                "categories": MODEL_CATEGORIES[key.value],
            }
            for key, checkpoint in CHECKPOINTS.items()
        ]
    }


@app.get("/api/painting-themes")
async def list_painting_themes():
    """List the art styles offered by the painting prompt flow."""
    return {"themes": PAINTING_THEMES}


@app.post("/api/generate-image")
async def generate_image(
    request: GenerateImageRequest,
    adapter: GenerationAdapter = Depends(get_adapter),
):
    """
    Generate a single image.

    Example:
        POST /api/generate-image
        {
            "prompt": "a cat",
            "size": "1024x1024",
            "quality": "standard",
            "style": "vivid",
            "model": "sdxl"
        }
    """
    logger.info(f"Received image request: model={request.model}, size={request.size}")
    try:
        result = await adapter.generate(request.to_generation_request())
    except ShowcaseError as e:
        logger.error(f"Error in image generation: {e}")
        return error_response(f"Error generating image: {e}")

    return result.to_dict()


@app.post("/api/compare")
async def compare_models(
    request: CompareRequest,
    adapter: GenerationAdapter = Depends(get_adapter),
):
    """Generate the same prompt with SDXL and Dreamshaper; both must succeed."""
    samplers = {}
    if request.sdxl_sampler:
        samplers["sdxl"] = request.sdxl_sampler
    if request.dreamshaper_sampler:
        samplers["dreamshaper"] = request.dreamshaper_sampler

    try:
        results = await adapter.compare(request.to_generation_request(), samplers=samplers)
    except ShowcaseError as e:
        logger.error(f"Error in model comparison: {e}")
        return error_response(f"Error generating images: {e}")

    return {"images": {model: result.image_data for model, result in results.items()}}


@app.post("/api/chat")
async def chat(request: ChatRequest, relay: PromptRelay = Depends(get_prompt_relay)):
    """
    Stream a prompt suggestion as plain text.

    The first token is awaited before the response starts so provider
    failures can still be reported with a 500 status.
    """
    messages = [message.model_dump() for message in request.messages]
    tokens = relay.stream(messages, model=request.model, category=request.category)

    try:
        first = await tokens.__anext__()
    except StopAsyncIteration:
        first = ""
    except ShowcaseError as e:
        return error_response(str(e))

    async def body() -> AsyncIterator[str]:
        if first:
            yield first
        async for token in tokens:
            yield token

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")


@app.post("/api/tts")
async def tts(request: SpeechRequest, relay: SpeechRelay = Depends(get_speech_relay)):
    """Return MP3 audio for the given text."""
    try:
        audio = await relay.synthesize(request.text, voice=request.voice)
    except ShowcaseError as e:
        logger.error(f"Error generating TTS: {e}")
        return error_response("Error generating TTS")

    return Response(content=audio, media_type="audio/mpeg")


def run_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: Optional[bool] = None,
):
    """
    Run the FastAPI server.

    Args:
        host: Host to bind to (default from config)
        port: Port to listen on (default from config)
        reload: Enable auto-reload for development (default from config)
    """
    import uvicorn

    api = get_config().api
    host = host or api["host"]
    port = port or api["port"]
    reload = api["reload"] if reload is None else reload

    logger.info(f"Starting sd-showcase API server on {host}:{port}")

    uvicorn.run(
        "sd_showcase.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level=api["log_level"],
    )


if __name__ == "__main__":
    # Run server in development mode
    import sys

    port = 8000
    if len(sys.argv) > 1:
        port = int(sys.argv[1])

    run_server(port=port, reload=True)
