"""
Module: tests.conftest
Purpose: Shared fixtures: test config, a recording fake diffusion backend and a fake OpenAI client
"""

import base64
import json
import sys
from io import BytesIO
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest
from PIL import Image

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sd_showcase.config import Config
from sd_showcase.core import GenerationAdapter

BACKEND_URL = "http://sd.test/sdapi/v1"


def make_png_b64(size=(4, 4), color=(200, 30, 30)) -> str:
    """Small real PNG, base64-encoded."""
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()


class FakeBackend:
    """
    In-memory diffusion backend mounted through httpx.MockTransport.

    Every request is recorded. `handlers` maps an endpoint name ("samplers",
    "txt2img", "img2img") to a callable returning an httpx.Response; `images`
    maps absolute URLs to (status, bytes) for init-image fetches.
    """

    def __init__(self, samplers=None, image_b64=None):
        self.samplers = samplers if samplers is not None else ["Euler a", "Euler", "DPM++ 2M Karras"]
        self.image_b64 = image_b64 or make_png_b64()
        self.handlers = {}
        self.images = {}
        self.requests = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url in self.images:
            status, content = self.images[url]
            return httpx.Response(status, content=content, headers={"content-type": "image/png"})

        endpoint = request.url.path.rsplit("/", 1)[-1]
        if endpoint in self.handlers:
            return self.handlers[endpoint](request)

        if endpoint == "samplers":
            return httpx.Response(200, json=[{"name": name} for name in self.samplers])
        if endpoint in ("txt2img", "img2img"):
            return httpx.Response(200, json={"images": [self.image_b64], "info": "{}"})
        return httpx.Response(404, text="Not Found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    def calls(self, endpoint: str):
        return [r for r in self.requests if r.url.path.endswith(f"/{endpoint}")]

    def payloads(self, endpoint: str):
        return [json.loads(r.content) for r in self.calls(endpoint)]

    def fetches(self):
        return [r for r in self.requests if str(r.url) in self.images]


class FakeStream:
    """Async iterable of chat completion chunks."""

    def __init__(self, tokens, error=None):
        self.tokens = tokens
        self.error = error

    def __aiter__(self):
        return self._chunks()

    async def _chunks(self):
        for token in self.tokens:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=token))])
        if self.error is not None:
            raise self.error


class FakeOpenAI:
    """Stand-in for openai.AsyncOpenAI recording the calls made to it."""

    def __init__(self, tokens=None, audio=b"ID3fake-mp3", error=None, stream_error=None):
        self.tokens = tokens if tokens is not None else ["A ", "misty ", "forest"]
        self.audio_bytes = audio
        self.error = error
        self.stream_error = stream_error
        self.chat_calls = []
        self.speech_calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create_chat))
        self.audio = SimpleNamespace(speech=SimpleNamespace(create=self._create_speech))

    async def _create_chat(self, **kwargs):
        self.chat_calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return FakeStream(self.tokens, error=self.stream_error)

    async def _create_speech(self, **kwargs):
        self.speech_calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.audio_bytes)


@pytest.fixture
def config(monkeypatch, tmp_path):
    """Config pointing at the fake backend, isolated from the environment."""
    for name in ("SD_API_URL", "SD_API_TIMEOUT", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    cfg = Config()
    cfg.backend["base_url"] = BACKEND_URL
    cfg.backend["timeout"] = 5.0
    cfg.speech["debounce_seconds"] = 0.05
    cfg.output["directory"] = str(tmp_path / "outputs")
    return cfg


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def adapter(config, fake_backend):
    return GenerationAdapter(config, client=fake_backend.client())
