"""
Module: sd_showcase.request_builder
Purpose: Map user-facing generation parameters onto the diffusion backend schema

This module is pure: it performs no I/O. The generation adapter resolves the
sampler and the init image first and hands both in.
"""

from dataclasses import dataclass, field, replace as dataclass_replace
from enum import Enum
from typing import Optional, Tuple, Dict, Any, List
import logging

from sd_showcase.errors import ValidationError

logger = logging.getLogger(__name__)


class ModelKey(str, Enum):
    """Checkpoints the backend is asked to load, keyed by UI model name."""
    SDXL = "sdxl"
    DREAMSHAPER = "dreamshaper"


CHECKPOINTS: Dict[ModelKey, str] = {
    ModelKey.SDXL: "sd_xl_base_1.0.safetensors",
    ModelKey.DREAMSHAPER: "dreamshaper_8.safetensors",
}

# Quality tier -> sampling steps
QUALITY_STEPS: Dict[str, int] = {
    "standard": 30,
    "hd": 50,
}

# Style tier -> classifier-free guidance scale
STYLE_GUIDANCE: Dict[str, float] = {
    "vivid": 7.5,
    "natural": 7.0,
}

DEFAULT_DENOISING_STRENGTH = 0.75

TXT2IMG = "txt2img"
IMG2IMG = "img2img"


@dataclass(frozen=True)
class GenerationRequest:
    """
    Immutable parameters for one "generate one image" operation.

    Attributes:
        prompt: Text prompt
        size: Resolution string "WxH"
        quality: Quality tier ("standard" or "hd")
        style: Style tier ("vivid" or "natural")
        model: Model key ("sdxl" or "dreamshaper")
        sampler: Requested sampler name (None = configured default)
        steps: Explicit step count, overrides the quality tier
        cfg_scale: Explicit guidance scale, overrides the style tier
        denoising_strength: Explicit img2img strength (default 0.75)
        init_image: URL or data URI of the image-to-image source
    """
    prompt: str
    size: str = "1024x1024"
    quality: str = "standard"
    style: str = "vivid"
    model: str = "sdxl"
    sampler: Optional[str] = None
    steps: Optional[int] = None
    cfg_scale: Optional[float] = None
    denoising_strength: Optional[float] = None
    init_image: Optional[str] = None

    def replace(self, **changes: Any) -> "GenerationRequest":
        """Return a copy with the given fields changed."""
        return dataclass_replace(self, **changes)


@dataclass(frozen=True)
class ResolvedBackendRequest:
    """Backend request body, derived deterministically from a GenerationRequest."""
    prompt: str
    width: int
    height: int
    steps: int
    cfg_scale: float
    sampler_name: str
    checkpoint: str
    negative_prompt: str = ""
    batch_size: int = 1
    n_iter: int = 1
    seed: int = -1
    init_images: Optional[List[str]] = field(default=None)
    denoising_strength: Optional[float] = None

    @property
    def endpoint(self) -> str:
        """Backend endpoint this request must be posted to."""
        return IMG2IMG if self.init_images else TXT2IMG

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON body expected by the backend."""
        payload: Dict[str, Any] = {
            "prompt": self.prompt,
            "negative_prompt": self.negative_prompt,
            "width": self.width,
            "height": self.height,
            "steps": self.steps,
            "cfg_scale": self.cfg_scale,
            "sampler_name": self.sampler_name,
            "batch_size": self.batch_size,
            "n_iter": self.n_iter,
            "seed": self.seed,
            "override_settings": {
                "sd_model_checkpoint": self.checkpoint,
            },
        }
        if self.init_images:
            payload["init_images"] = list(self.init_images)
            payload["denoising_strength"] = self.denoising_strength
        return payload


def parse_resolution(size: str) -> Tuple[int, int]:
    """
    Parse a "WxH" resolution string.

    Args:
        size: Resolution such as "1024x768"

    Returns:
        (width, height) tuple of positive integers

    Raises:
        ValidationError: If the string is not two positive integers joined by "x"
    """
    if not isinstance(size, str):
        raise ValidationError(f"Invalid resolution: {size!r}")

    parts = size.split("x")
    if len(parts) != 2:
        raise ValidationError(f"Invalid resolution: {size!r} (expected WxH)")

    if not all(part.isascii() and part.isdigit() for part in parts):
        raise ValidationError(f"Invalid resolution: {size!r} (non-numeric dimension)")
    width, height = (int(part) for part in parts)

    if width <= 0 or height <= 0:
        raise ValidationError(f"Invalid resolution: {size!r} (dimensions must be positive)")

    return width, height


def resolve_checkpoint(model: str) -> str:
    """
    Look up the checkpoint filename for a model key.

    Raises:
        ValidationError: If the model key is not in CHECKPOINTS
    """
    try:
        return CHECKPOINTS[ModelKey(model)]
    except ValueError:
        raise ValidationError(f"unsupported model: {model}")


def steps_for(request: GenerationRequest) -> int:
    """Explicit steps, else the quality tier default (anything but "hd" is standard)."""
    if request.steps is not None:
        return int(request.steps)
    return QUALITY_STEPS.get(request.quality, QUALITY_STEPS["standard"])


def guidance_for(request: GenerationRequest) -> float:
    """Explicit guidance, else the style tier default (anything but "vivid" is natural)."""
    if request.cfg_scale is not None:
        return float(request.cfg_scale)
    return STYLE_GUIDANCE.get(request.style, STYLE_GUIDANCE["natural"])


def validate_request(request: GenerationRequest) -> None:
    """Check the parts of a request that need no network: resolution and model."""
    parse_resolution(request.size)
    resolve_checkpoint(request.model)


def build_backend_request(
    request: GenerationRequest,
    sampler_name: str,
    init_image: Optional[str] = None,
    default_denoising_strength: float = DEFAULT_DENOISING_STRENGTH,
) -> ResolvedBackendRequest:
    """
    Build the backend request for a generation.

    Args:
        request: Caller parameters
        sampler_name: Sampler already resolved against the backend
        init_image: Raw base64 payload of the init image (selects img2img)
        default_denoising_strength: Strength used when the request names none

    Returns:
        ResolvedBackendRequest ready to post

    Raises:
        ValidationError: Malformed resolution or unknown model

    Example:
        >>> req = GenerationRequest(prompt="a cat", size="1024x1024")
        >>> build_backend_request(req, "Euler a").to_payload()["steps"]
        30
    """
    width, height = parse_resolution(request.size)
    checkpoint = resolve_checkpoint(request.model)

    denoising_strength = None
    init_images = None
    if init_image:
        init_images = [init_image]
        denoising_strength = (
            float(request.denoising_strength)
            if request.denoising_strength is not None
            else default_denoising_strength
        )

    resolved = ResolvedBackendRequest(
        prompt=request.prompt,
        width=width,
        height=height,
        steps=steps_for(request),
        cfg_scale=guidance_for(request),
        sampler_name=sampler_name,
        checkpoint=checkpoint,
        init_images=init_images,
        denoising_strength=denoising_strength,
    )
    logger.debug(
        f"Built {resolved.endpoint} request: {width}x{height}, steps={resolved.steps}, "
        f"cfg={resolved.cfg_scale}, sampler={sampler_name}, checkpoint={checkpoint}"
    )
    return resolved
