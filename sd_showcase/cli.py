"""
Module: sd_showcase.cli
Purpose: Command-line interface for generation, comparison and prompt relays
Dependencies: click

Runs the same adapter as the HTTP server, directly from a terminal.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from sd_showcase import __version__
from sd_showcase.config import get_config
from sd_showcase.core import GenerationAdapter
from sd_showcase.errors import ShowcaseError
from sd_showcase.relay import (
    PromptRelay,
    SpeechRelay,
    build_img2img_request,
    build_painting_request,
    build_prompt_request,
)
from sd_showcase.request_builder import CHECKPOINTS, GenerationRequest, ModelKey
from sd_showcase.utils.debounce import SpeechDebouncer
from sd_showcase.utils.output_manager import OutputManager, safe_stem

MODEL_CHOICES = [key.value for key in ModelKey]
PROMPT_KINDS = ["showcase", "painting", "img2img"]


def _output_manager(output: Optional[Path], session_name: str) -> OutputManager:
    config = get_config()
    return OutputManager(
        base_dir=str(output or config.output["directory"]),
        session_name=session_name,
        image_format=config.output["image_format"],
        jpeg_quality=config.output["jpeg_quality"],
    )


def generation_options(func):
    """Options shared by `generate` and `compare`."""
    options = [
        click.option("--size", default="1024x1024", show_default=True, help="Resolution as WxH"),
        click.option(
            "--quality",
            type=click.Choice(["standard", "hd"]),
            default="standard",
            show_default=True,
            help="standard = 30 steps, hd = 50 steps",
        ),
        click.option(
            "--style",
            type=click.Choice(["vivid", "natural"]),
            default="vivid",
            show_default=True,
            help="vivid = cfg 7.5, natural = cfg 7.0",
        ),
        click.option("--steps", "-s", type=int, default=None, help="Explicit steps (overrides quality)"),
        click.option("--cfg-scale", type=float, default=None, help="Explicit guidance (overrides style)"),
        click.option("--init-image", default=None, help="URL or data URI for image-to-image"),
        click.option(
            "--denoising-strength",
            type=float,
            default=None,
            help="Image-to-image strength (default: 0.75)",
        ),
        click.option(
            "--output", "-o",
            type=click.Path(path_type=Path),
            default=None,
            help="Output directory (default: outputs/)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="sd-showcase")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """
    sd-showcase - Prompt, image and speech relay for a Stable Diffusion backend.

    Examples:

    \b
      # Generate a single image
      sd-showcase generate "a serene mountain landscape"

    \b
      # Compare SDXL and Dreamshaper on one prompt
      sd-showcase compare "a dragon over a city" --quality hd

    \b
      # Ask the language model for a prompt and speak it
      sd-showcase prompt "Fantasy Creatures" --model dreamshaper --speak

    \b
      # Run the API server
      sd-showcase serve --port 8000
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default=None, help="Host to bind to (default from config)")
@click.option("--port", "-p", type=int, default=None, help="Port (default from config)")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP API server."""
    from sd_showcase.server import run_server

    run_server(host=host, port=port, reload=reload or None)


@cli.command()
@click.argument("prompt")
@click.option(
    "--model", "-m",
    type=click.Choice(MODEL_CHOICES),
    default=ModelKey.SDXL.value,
    show_default=True,
    help="Checkpoint to use",
)
@click.option("--sampler", default=None, help="Sampler name (falls back to 'Euler a' if unknown)")
@generation_options
def generate(
    prompt: str,
    model: str,
    sampler: Optional[str],
    size: str,
    quality: str,
    style: str,
    steps: Optional[int],
    cfg_scale: Optional[float],
    init_image: Optional[str],
    denoising_strength: Optional[float],
    output: Optional[Path],
):
    """
    Generate a single image from a text prompt.

    PROMPT: Text description of the image to generate

    \b
    Examples:
      sd-showcase generate "a serene mountain landscape at sunset"
      sd-showcase generate "cyberpunk city" --model dreamshaper --quality hd
      sd-showcase generate "oil painting" --init-image https://example.com/cat.png
    """
    request = GenerationRequest(
        prompt=prompt,
        size=size,
        quality=quality,
        style=style,
        model=model,
        sampler=sampler,
        steps=steps,
        cfg_scale=cfg_scale,
        denoising_strength=denoising_strength,
        init_image=init_image,
    )

    async def run():
        async with GenerationAdapter() as adapter:
            return await adapter.generate(request)

    try:
        click.echo(f"🎨 Generating with {model}: {prompt}")
        result = asyncio.run(run())
        path = _output_manager(output, "generation").save_image(
            result.image_data, f"{safe_stem(prompt)}_{model}"
        )

        click.echo(f"✓ Image generated successfully ({result.endpoint})")
        click.echo(f"  Sampler: {result.sampler}")
        if result.sampler_substituted:
            click.echo(f"  ⚠️  Requested sampler unavailable, used {result.sampler}")
        click.echo(f"  Saved to: {path}")

    except ShowcaseError as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("prompt")
@click.option("--sdxl-sampler", default=None, help="Sampler for the SDXL run")
@click.option("--dreamshaper-sampler", default=None, help="Sampler for the Dreamshaper run")
@generation_options
def compare(
    prompt: str,
    sdxl_sampler: Optional[str],
    dreamshaper_sampler: Optional[str],
    size: str,
    quality: str,
    style: str,
    steps: Optional[int],
    cfg_scale: Optional[float],
    init_image: Optional[str],
    denoising_strength: Optional[float],
    output: Optional[Path],
):
    """
    Generate PROMPT with SDXL and Dreamshaper concurrently.

    Nothing is saved unless both generations succeed.
    """
    request = GenerationRequest(
        prompt=prompt,
        size=size,
        quality=quality,
        style=style,
        steps=steps,
        cfg_scale=cfg_scale,
        denoising_strength=denoising_strength,
        init_image=init_image,
    )
    samplers = {}
    if sdxl_sampler:
        samplers[ModelKey.SDXL.value] = sdxl_sampler
    if dreamshaper_sampler:
        samplers[ModelKey.DREAMSHAPER.value] = dreamshaper_sampler

    async def run():
        async with GenerationAdapter() as adapter:
            return await adapter.compare(request, samplers=samplers)

    try:
        click.echo(f"🎨 Comparing models on: {prompt}")
        results = asyncio.run(run())
        mgr = _output_manager(output, "comparison")

        for model, result in results.items():
            path = mgr.save_image(result.image_data, f"{safe_stem(prompt)}_{model}")
            click.echo(f"✓ {model}: {path} (sampler: {result.sampler})")

    except ShowcaseError as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
def samplers():
    """List the samplers currently loaded by the backend."""

    async def run():
        async with GenerationAdapter() as adapter:
            return await adapter.backend.list_samplers()

    try:
        for name in asyncio.run(run()):
            click.echo(name)
    except ShowcaseError as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("category", required=False)
@click.option(
    "--kind", "-k",
    type=click.Choice(PROMPT_KINDS),
    default="showcase",
    show_default=True,
    help="showcase = model category, painting = art style, img2img = from a description",
)
@click.option("--description", "-d", default=None, help="Extra elements to include")
@click.option(
    "--model", "-m",
    type=click.Choice(MODEL_CHOICES),
    default=None,
    help="Tailor the prompt to one model (showcase only; default: suitable for both)",
)
@click.option("--speak", is_flag=True, help="Synthesize the prompt as MP3")
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output directory for audio (default: outputs/)",
)
def prompt(
    category: Optional[str],
    kind: str,
    description: Optional[str],
    model: Optional[str],
    speak: bool,
    output: Optional[Path],
):
    """
    Stream a detailed image prompt from the language model.

    CATEGORY is a model category (showcase) or an art style (painting).
    The img2img kind builds its prompt from --description alone.

    \b
    Examples:
      sd-showcase prompt "Photorealistic Landscapes" --model sdxl
      sd-showcase prompt "Abstract Art" -d "neon, fog" --speak
      sd-showcase prompt Impressionism --kind painting -d "a harbour at dusk" --speak
      sd-showcase prompt --kind img2img -d "a red fox in snow"
    """
    config = get_config()

    try:
        if kind == "painting":
            request_text = build_painting_request(category, description)
            model = category = None
        elif kind == "img2img":
            request_text = build_img2img_request(description or "")
            model = category = None
        elif category:
            request_text = build_prompt_request(category, description, model)
        else:
            raise click.UsageError("CATEGORY is required for showcase prompts")
    except ShowcaseError as e:
        raise click.UsageError(str(e))

    messages = [{"role": "user", "content": request_text}]
    audio_stem = safe_stem(category or description or kind)

    async def run():
        relay = PromptRelay(config)
        speech_relay = SpeechRelay(config)
        saved = []

        async def speak_text(text: str) -> None:
            audio = await speech_relay.synthesize(text)
            mgr = _output_manager(output, "speech")
            saved.append(mgr.save_audio(audio, audio_stem))

        debouncer = SpeechDebouncer(config.speech["debounce_seconds"], speak_text)
        text = ""
        async for token in relay.stream(messages, model=model, category=category):
            click.echo(token, nl=False)
            text += token
            if speak:
                debouncer.update(text)
        click.echo()

        if speak and text:
            await debouncer.flush()
        return saved

    try:
        for path in asyncio.run(run()):
            click.echo(f"🔊 Speech saved to: {path}")
    except ShowcaseError as e:
        click.echo(f"\n✗ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
def info():
    """Display the effective configuration."""
    config = get_config()
    click.echo("=== sd-showcase Configuration ===\n")
    click.echo(f"Backend: {config.backend['base_url']}")
    click.echo(f"Timeout: {config.timeout}s")
    click.echo(f"Default sampler: {config.backend['default_sampler']}")
    click.echo(f"Fallback sampler: {config.backend['fallback_sampler']}")
    click.echo(f"Denoising strength: {config.img2img['denoising_strength']}")

    click.echo("\n--- Checkpoints ---")
    for key, checkpoint in CHECKPOINTS.items():
        click.echo(f"{key.value}: {checkpoint}")

    click.echo("\n--- Language model ---")
    click.echo(f"Chat model: {config.llm['chat_model']}")
    click.echo(f"TTS model: {config.llm['tts_model']} (voice: {config.llm['voice']})")
    click.echo(f"API key: {'set' if config.llm['api_key'] else 'not set'}")

    click.echo(f"\nOutput directory: {config.output['directory']}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
