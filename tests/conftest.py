"""
Shared fixtures: synthetic images and a webhook stub built on httpx.MockTransport.
"""

import json
import os
from io import BytesIO
from typing import Callable, List

import httpx
import pytest
from PIL import Image


def make_image(width: int, height: int, fmt: str = "PNG", mode: str = "RGB", noise: bool = False) -> bytes:
    """Encode a synthetic image; ``noise`` makes it hard to compress."""
    if noise:
        img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
        if mode != "RGB":
            img = img.convert(mode)
    else:
        color = (200, 120, 40, 128) if mode == "RGBA" else (200, 120, 40)
        img = Image.new(mode, (width, height), color[: len(mode)])
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return make_image


@pytest.fixture
def photo_bytes() -> bytes:
    return make_image(1600, 900, fmt="JPEG")


class WebhookStub:
    """Records requests and answers each one with ``handler``."""

    def __init__(self, handler):
        self.handler = handler
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return await self.handler(request)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def webhook_stub() -> Callable[..., WebhookStub]:
    def factory(handler=None, payload=None, status_code: int = 200) -> WebhookStub:
        if handler is None:
            async def handler(request):
                return httpx.Response(status_code, json=payload if payload is not None else {})
        return WebhookStub(handler)

    return factory
