# creator/classifier.py
import logging
from typing import Any

from .model import Failed, Outcome, StillProcessing, Success

logger = logging.getLogger(__name__)

PENDING_STATUSES = ("waiting", "processing")
FAILED_STATUS = "failed"


def classify(raw: Any) -> Outcome:
    """
    Map a generation-service payload to an Outcome. First match wins:

    1. ``success`` is True and ``imageUrl`` is a non-empty string -> Success
    2. ``status`` is "waiting" / "processing"                     -> StillProcessing
    3. ``status`` is "failed"                                      -> Failed(debug.failMsg)
    4. anything else                                               -> Failed(unknown status)

    Never raises: non-object payloads are treated as ``{}``.
    """
    data = raw if isinstance(raw, dict) else {}

    success = data.get("success")
    image_url = data.get("imageUrl")
    status = data.get("status")

    if success is True and isinstance(image_url, str) and image_url:
        return Success(image_url=image_url)

    if status in PENDING_STATUSES:
        return StillProcessing(status_label=status)

    if status == FAILED_STATUS:
        return Failed(reason_text=_fail_message(data.get("debug")))

    logger.warning("[Classifier] Unrecognised payload: status=%r success=%r", status, success)
    return Failed(
        reason_text=f"Unknown status from generation service (status={status!r}, success={success!r})"
    )


def _fail_message(debug: Any) -> str:
    if isinstance(debug, dict):
        msg = debug.get("failMsg")
        if isinstance(msg, str) and msg.strip():
            return msg
    return "Unknown error"
