"""
Module: sd_showcase.relay
Purpose: Prompt and speech relays to the hosted language-model API
Dependencies: openai

PromptRelay streams chat completions that turn a short theme into a detailed
image prompt. SpeechRelay turns text into MP3 audio. Both wrap provider
failures in RelayError.
"""

from typing import Any, AsyncIterator, Dict, List, Optional
import logging

from openai import AsyncOpenAI, OpenAIError

from sd_showcase.config import Config, get_config
from sd_showcase.errors import RelayError, ValidationError
from sd_showcase.request_builder import ModelKey

logger = logging.getLogger(__name__)

ALLOWED_ROLES = ("system", "user", "assistant")

BASE_SYSTEM_MESSAGE = (
    "You are an AI assistant specialized in creating prompts for text-to-image generators. "
)

# Prompt themes offered for each model
MODEL_CATEGORIES: Dict[str, List[str]] = {
    ModelKey.SDXL.value: [
        "Photorealistic Landscapes",
        "Detailed Portraits",
        "Complex Architectural Designs",
        "Fine Art Recreations",
        "Intricate Textures and Patterns",
    ],
    ModelKey.DREAMSHAPER.value: [
        "Fantasy Creatures",
        "Sci-Fi Environments",
        "Stylized Character Designs",
        "Abstract Concept Visualizations",
        "Surreal Dreamscapes",
    ],
}

MODEL_LABELS: Dict[str, str] = {
    ModelKey.SDXL.value: "SDXL",
    ModelKey.DREAMSHAPER.value: "Dreamshaper",
}

# Themes offered by the painting flow
PAINTING_THEMES: List[str] = ["Renaissance", "Impressionism", "Surrealism", "Abstract", "Pop Art"]

BOTH_MODELS_SUFFIX = ". The prompt should be suitable for both SDXL and Dreamshaper models"


def system_message_for(model: Optional[str] = None, category: Optional[str] = None) -> str:
    """
    Build the system instruction for the selected model and category.

    Args:
        model: Model key the prompt is meant for (None = generic)
        category: Theme to emphasize (None = no theme clause)

    Returns:
        System message text
    """
    if model == ModelKey.SDXL.value:
        focus = f", emphasizing {category}" if category else ""
        return BASE_SYSTEM_MESSAGE + (
            f"Focus on creating detailed, realistic prompts for the SDXL model{focus}. "
            f"Include specific details about lighting, composition, and style "
            f"that SDXL excels at rendering."
        )
    if model == ModelKey.DREAMSHAPER.value:
        focus = f", focusing on {category}" if category else ""
        return BASE_SYSTEM_MESSAGE + (
            f"Create imaginative and fantastical prompts for the Dreamshaper model{focus}. "
            f"Emphasize unique and creative elements that showcase "
            f"Dreamshaper's ability to generate surreal and stylized images."
        )
    return BASE_SYSTEM_MESSAGE + (
        "Provide detailed descriptions of images based on the given theme and user prompts, "
        "including elements, style, details, and colors."
    )


def build_prompt_request(
    category: str,
    description: Optional[str] = None,
    model: Optional[str] = None,
) -> str:
    """
    Build the user message asking the language model for an image prompt.

    Example:
        >>> build_prompt_request("Fantasy Creatures", model="dreamshaper")
        'Generate a detailed prompt for image generation of a Fantasy Creatures using Dreamshaper.'
    """
    text = f"Generate a detailed prompt for image generation of a {category}"
    if model in MODEL_LABELS:
        text += f" using {MODEL_LABELS[model]}"
    if description:
        text += f" with the following elements: {description}"
    if model not in MODEL_LABELS:
        text += BOTH_MODELS_SUFFIX
    return text + "."


def build_painting_request(theme: Optional[str] = None, description: Optional[str] = None) -> str:
    """
    Build the user message for a painting in a given art style.

    Raises:
        ValidationError: If neither a theme nor a description is given

    Example:
        >>> build_painting_request("Impressionism", "a harbour at dusk")
        'Generate a detailed prompt for image generation of a Impressionism style painting with the following elements: a harbour at dusk.'
    """
    if not theme and not description:
        raise ValidationError("a painting theme or description is required")

    subject = f"{theme} style painting" if theme else "painting"
    text = f"Generate a detailed prompt for image generation of a {subject}"
    if description:
        text += f" with the following elements: {description}"
    return text + "."


def build_img2img_request(description: str) -> str:
    """
    Build the user message for a source image meant for image-to-image.

    Raises:
        ValidationError: If the description is empty
    """
    if not description or not description.strip():
        raise ValidationError("description must not be empty")
    return (
        f"Generate a detailed prompt for image generation based on the following "
        f"description: {description}{BOTH_MODELS_SUFFIX}."
    )


def validate_messages(messages: Any) -> List[Dict[str, str]]:
    """
    Check a role-tagged message history.

    Raises:
        ValidationError: If messages is empty or an entry is malformed
    """
    if not isinstance(messages, list) or not messages:
        raise ValidationError("messages must be a non-empty list")

    cleaned = []
    for index, message in enumerate(messages):
        if not isinstance(message, dict):
            raise ValidationError(f"message {index} is not an object")
        role = message.get("role")
        content = message.get("content")
        if role not in ALLOWED_ROLES:
            raise ValidationError(f"message {index} has unsupported role: {role!r}")
        if not isinstance(content, str):
            raise ValidationError(f"message {index} content must be a string")
        cleaned.append({"role": role, "content": content})
    return cleaned


def _make_client(config: Config) -> AsyncOpenAI:
    try:
        return AsyncOpenAI(api_key=config.llm["api_key"], timeout=config.timeout)
    except OpenAIError as e:
        # Raised by the SDK when no API key is configured
        raise RelayError(f"Language model client unavailable: {e}")


class PromptRelay:
    """
    Streams prompt suggestions from the hosted chat model.

    Example:
        >>> relay = PromptRelay()
        >>> async for token in relay.stream([{"role": "user", "content": "a castle"}]):
        ...     print(token, end="")
    """

    def __init__(self, config: Optional[Config] = None, client: Optional[AsyncOpenAI] = None):
        self.config = config or get_config()
        self.client = client or _make_client(self.config)

    async def stream(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        category: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """
        Stream text deltas for a message history.

        Args:
            messages: Role-tagged history (system/user/assistant)
            model: Image model key used to pick the system message
            category: Theme to emphasize

        Yields:
            Text tokens as they arrive

        Raises:
            ValidationError: Malformed messages
            RelayError: Provider failure
        """
        history = validate_messages(messages)
        chat_messages = [{"role": "system", "content": system_message_for(model, category)}]
        chat_messages.extend(history)

        logger.info(f"Requesting prompt from {self.config.llm['chat_model']} (model={model}, category={category})")
        try:
            response = await self.client.chat.completions.create(
                model=self.config.llm["chat_model"],
                messages=chat_messages,
                stream=True,
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except OpenAIError as e:
            logger.error(f"Prompt relay failed: {e}")
            raise RelayError(f"Error generating prompt: {e}")


class SpeechRelay:
    """Synthesizes speech for generated prompts."""

    def __init__(self, config: Optional[Config] = None, client: Optional[AsyncOpenAI] = None):
        self.config = config or get_config()
        self.client = client or _make_client(self.config)

    async def synthesize(self, text: str, voice: Optional[str] = None) -> bytes:
        """
        Convert text to MP3 audio.

        Args:
            text: Text to speak
            voice: Voice name (None = configured default)

        Returns:
            MP3 bytes

        Raises:
            ValidationError: Empty text
            RelayError: Provider failure
        """
        if not text or not text.strip():
            raise ValidationError("text must not be empty")

        voice = voice or self.config.llm["voice"]
        logger.info(f"Synthesizing {len(text)} characters with voice {voice}")
        try:
            response = await self.client.audio.speech.create(
                model=self.config.llm["tts_model"],
                voice=voice,
                input=text,
            )
        except OpenAIError as e:
            logger.error(f"Speech relay failed: {e}")
            raise RelayError(f"Error generating TTS: {e}")

        return response.content
