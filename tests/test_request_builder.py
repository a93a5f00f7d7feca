"""
Module: tests.test_request_builder
Purpose: Parameter mapping from GenerationRequest to the backend request body
"""

import pytest

from sd_showcase.errors import ValidationError
from sd_showcase.request_builder import (
    CHECKPOINTS,
    GenerationRequest,
    ModelKey,
    build_backend_request,
    parse_resolution,
    resolve_checkpoint,
)


@pytest.mark.parametrize(
    "size, expected",
    [
        ("1024x1024", (1024, 1024)),
        ("768x512", (768, 512)),
        ("1x1", (1, 1)),
        ("1792x1024", (1792, 1024)),
    ],
)
def test_parse_resolution_valid(size, expected):
    """Valid WxH strings parse into the exact integers."""
    assert parse_resolution(size) == expected


@pytest.mark.parametrize(
    "size",
    [
        "1024", "1024*1024", "axb", "1024x", "x1024", "1024x1024x2", "0x512", "-5x512", "", "10.5x20",
        "1_024x768", " 1024x768", "1024x768 ", "+512x512", "\uff11\uff10\uff12\uff14x768", "\u00b9x1",
    ],
)
def test_parse_resolution_malformed(size):
    """Malformed resolution strings fail with ValidationError."""
    with pytest.raises(ValidationError):
        parse_resolution(size)


def test_parse_resolution_rejects_non_string():
    with pytest.raises(ValidationError):
        parse_resolution(None)


@pytest.mark.parametrize(
    "quality, style, steps, cfg",
    [
        ("standard", "vivid", 30, 7.5),
        ("standard", "natural", 30, 7.0),
        ("hd", "vivid", 50, 7.5),
        ("hd", "natural", 50, 7.0),
    ],
)
def test_tier_defaults(quality, style, steps, cfg):
    """Quality and style tiers map to the fixed step/guidance table."""
    request = GenerationRequest(prompt="p", quality=quality, style=style)
    resolved = build_backend_request(request, "Euler a")

    assert resolved.steps == steps
    assert resolved.cfg_scale == cfg


@pytest.mark.parametrize("quality", ["standard", "hd"])
@pytest.mark.parametrize("style", ["vivid", "natural"])
def test_explicit_overrides_win(quality, style):
    """Explicit steps and cfg_scale take precedence over tier defaults."""
    request = GenerationRequest(prompt="p", quality=quality, style=style, steps=12, cfg_scale=3.5)
    resolved = build_backend_request(request, "Euler a")

    assert resolved.steps == 12
    assert resolved.cfg_scale == 3.5


def test_unknown_tiers_fall_back_to_standard_and_natural():
    request = GenerationRequest(prompt="p", quality="ultra", style="moody")
    resolved = build_backend_request(request, "Euler a")

    assert resolved.steps == 30
    assert resolved.cfg_scale == 7.0


def test_checkpoint_table():
    assert resolve_checkpoint("sdxl") == "sd_xl_base_1.0.safetensors"
    assert resolve_checkpoint("dreamshaper") == "dreamshaper_8.safetensors"
    assert set(CHECKPOINTS) == set(ModelKey)


def test_unknown_model_is_rejected():
    request = GenerationRequest(prompt="p", model="midjourney")
    with pytest.raises(ValidationError, match="unsupported model"):
        build_backend_request(request, "Euler a")


def test_txt2img_payload_shape():
    """Fixed fields are always set and no denoising field is sent without an init image."""
    request = GenerationRequest(prompt="a cat", size="1024x768", model="sdxl")
    resolved = build_backend_request(request, "DPM++ 2M Karras")
    payload = resolved.to_payload()

    assert resolved.endpoint == "txt2img"
    assert payload == {
        "prompt": "a cat",
        "negative_prompt": "",
        "width": 1024,
        "height": 768,
        "steps": 30,
        "cfg_scale": 7.5,
        "sampler_name": "DPM++ 2M Karras",
        "batch_size": 1,
        "n_iter": 1,
        "seed": -1,
        "override_settings": {"sd_model_checkpoint": "sd_xl_base_1.0.safetensors"},
    }


def test_img2img_payload_adds_init_image_and_default_strength():
    request = GenerationRequest(prompt="a cat", model="dreamshaper")
    resolved = build_backend_request(request, "Euler a", init_image="aGVsbG8=")
    payload = resolved.to_payload()

    assert resolved.endpoint == "img2img"
    assert payload["init_images"] == ["aGVsbG8="]
    assert payload["denoising_strength"] == 0.75
    assert payload["override_settings"]["sd_model_checkpoint"] == "dreamshaper_8.safetensors"


def test_img2img_explicit_denoising_strength():
    request = GenerationRequest(prompt="a cat", denoising_strength=0.4)
    resolved = build_backend_request(request, "Euler a", init_image="aGVsbG8=")

    assert resolved.denoising_strength == 0.4


def test_request_is_immutable_and_replace_copies():
    request = GenerationRequest(prompt="a cat")
    other = request.replace(model="dreamshaper")

    with pytest.raises(Exception):
        request.model = "dreamshaper"
    assert request.model == "sdxl"
    assert other.model == "dreamshaper"
    assert other.prompt == "a cat"
