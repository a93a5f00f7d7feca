"""
Module: tests.test_image_source
Purpose: Init-image resolution from data URIs and URLs
"""

import asyncio
import base64

import httpx
import pytest

from sd_showcase.errors import FetchError, ValidationError
from sd_showcase.utils.image_source import resolve_init_image

IMAGE_URL = "http://images.test/cat.png"


def test_data_uri_is_stripped_without_network(fake_backend):
    client = fake_backend.client()

    payload = asyncio.run(resolve_init_image(client, "data:image/png;base64,iVBORw0KGgo="))

    assert payload == "iVBORw0KGgo="
    assert fake_backend.requests == []


def test_data_uri_without_separator_is_invalid(fake_backend):
    with pytest.raises(ValidationError):
        asyncio.run(resolve_init_image(fake_backend.client(), "data:image/png;base64"))


def test_url_is_fetched_once_and_base64_encoded(fake_backend):
    raw = b"\x89PNG\r\n\x1a\nfake"
    fake_backend.images[IMAGE_URL] = (200, raw)

    payload = asyncio.run(resolve_init_image(fake_backend.client(), IMAGE_URL))

    assert base64.b64decode(payload) == raw
    assert len(fake_backend.fetches()) == 1


def test_url_non_success_is_fetch_error(fake_backend):
    fake_backend.images[IMAGE_URL] = (404, b"")

    with pytest.raises(FetchError) as excinfo:
        asyncio.run(resolve_init_image(fake_backend.client(), IMAGE_URL))

    assert excinfo.value.url == IMAGE_URL
    assert len(fake_backend.fetches()) == 1


def test_url_transport_failure_is_fetch_error():
    def refuse(request):
        raise httpx.ConnectError("no route", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))

    with pytest.raises(FetchError):
        asyncio.run(resolve_init_image(client, IMAGE_URL))
