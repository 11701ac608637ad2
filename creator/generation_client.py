import asyncio
import base64
import logging
from typing import Any, Callable, Dict, Optional

import httpx

from config.settings import settings

from .classifier import classify
from .model import Failed, Outcome, PendingRequest, TransportError
from .utils import strip_data_uri_prefix

logger = logging.getLogger(__name__)


class GenerationClient:
    """
    Sends one (image, prompt) pair to the generation webhook and classifies the reply.

    The client does not queue or coalesce calls; callers keep at most one
    submission in flight (see ChatSession).
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
        style: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url or settings.GENERATION_WEBHOOK_URL
        self.timeout = settings.REQUEST_TIMEOUT if timeout is None else timeout
        self.style = style or settings.REQUEST_STYLE
        self._transport = transport

    async def submit(
        self,
        normalized_image: str,
        prompt: str,
        on_settle: Optional[Callable[[], None]] = None,
    ) -> Outcome:
        """
        POST the image to the webhook, bounded by ``self.timeout`` seconds.

        Always returns an Outcome: timeouts and network failures become
        TransportError, everything the service answers goes through classify().
        ``on_settle`` runs exactly once, whichever way the call ends.
        """
        try:
            image_b64 = strip_data_uri_prefix(normalized_image)
            pending = PendingRequest(image_bytes=base64.b64decode(image_b64), prompt=prompt)
            logger.info("[GenerationClient] POST %s, prompt=%s...", self.webhook_url, prompt[:50])

            try:
                # wait_for cancels the in-flight request on expiry
                return await asyncio.wait_for(self._post(pending, image_b64), timeout=self.timeout)
            except (asyncio.TimeoutError, httpx.TimeoutException):
                pending.settle()
                logger.warning("[GenerationClient] No response after %ss", self.timeout)
                return TransportError(
                    reason_text=f"no response after {self.timeout:g} seconds",
                    timed_out=True,
                )
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                pending.settle()
                logger.warning("[GenerationClient] Request failed: %r", e)
                return TransportError(reason_text=str(e) or type(e).__name__, timed_out=False)
        finally:
            if on_settle is not None:
                on_settle()

    async def _post(self, pending: PendingRequest, image_b64: str) -> Outcome:
        payload: Dict[str, Any] = {
            "image": image_b64,
            "prompt": pending.prompt,
            "style": self.style,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            r = await client.post(self.webhook_url, json=payload)

        if not pending.settle():
            # only reachable when _post is awaited without wait_for: the timeout already answered
            logger.warning("[GenerationClient] Dropping late response (HTTP %s)", r.status_code)
            raise asyncio.TimeoutError()

        if r.status_code != 200:
            logger.warning("[GenerationClient] Webhook returned %s: %s", r.status_code, r.text[:500])

        try:
            data = r.json()
        except ValueError:
            logger.error("[GenerationClient] Non-JSON response: %s", r.text[:200])
            return Failed(reason_text=f"invalid response from generation service (HTTP {r.status_code})")

        outcome = classify(data)
        logger.info("[GenerationClient] Outcome: %s", outcome.kind)
        return outcome
