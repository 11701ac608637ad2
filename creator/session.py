import logging
from typing import Optional

from .conversation import ConversationLog
from .errors import ImageDecodeError, InvalidSubmission, SubmissionInProgress
from .gallery import GalleryStore
from .generation_client import GenerationClient
from .model import AssistantTurn, DecodeError, Outcome, Success, SystemTurn, TransportError, UserTurn
from .normalizer import make_thumbnail, normalize_image_async
from .utils import data_uri_to_bytes, to_data_uri

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Welcome! Drop a photo of your restaurant space and I'll help transform it with "
    "AI-generated content. Choose a preset or describe what you'd like to see."
)
CLEARED_MESSAGE = "History cleared. Let's start again!"


class ChatSession:
    """
    One user's view of the pipeline: the selected image, the conversation and the gallery.

    Only one submission may be outstanding; ``processing`` is True while it is.
    """

    def __init__(
        self,
        client: GenerationClient,
        gallery: GalleryStore,
        log: Optional[ConversationLog] = None,
        normalize_timeout: Optional[float] = None,
        welcome_message: Optional[str] = WELCOME_MESSAGE,
    ):
        self.client = client
        self.gallery = gallery
        self.log = log if log is not None else ConversationLog()
        self.normalize_timeout = normalize_timeout
        self.processing = False
        self.selected_image: Optional[bytes] = None
        self._normalized: Optional[str] = None

        if welcome_message:
            self.log.append_turn(SystemTurn(content=welcome_message))

    # ==========================
    # Image selection
    # ==========================
    def select_image(self, raw: bytes) -> None:
        self.selected_image = raw
        self._normalized = None

    def clear_image(self) -> None:
        self.selected_image = None
        self._normalized = None

    async def prepare_image(self) -> str:
        """Normalize the selected image once; later calls reuse the result."""
        if self._normalized is None:
            if self.selected_image is None:
                raise InvalidSubmission("No image selected")
            self._normalized = await normalize_image_async(
                self.selected_image, timeout=self.normalize_timeout
            )
        return self._normalized

    # ==========================
    # Submission
    # ==========================
    async def submit(self, prompt: str, image: Optional[bytes] = None) -> AssistantTurn:
        """
        Send the selected image (or ``image``) with ``prompt`` and return the resolved turn.

        Raises:
            SubmissionInProgress: another submission has not settled yet.
            InvalidSubmission: the prompt is blank or there is no image.
        """
        if self.processing:
            raise SubmissionInProgress("A request is already being processed")
        if image is not None:
            self.select_image(image)
        prompt = (prompt or "").strip()
        if not prompt:
            raise InvalidSubmission("Prompt must not be empty")
        if self.selected_image is None:
            raise InvalidSubmission("Select an image before sending a request")

        self.processing = True
        try:
            normalized = await self.prepare_image()
            thumbnail = make_thumbnail(data_uri_to_bytes(normalized))
        except ImageDecodeError as e:
            logger.warning("[ChatSession] Could not decode upload: %s", e)
            self._finish_submission()
            self.log.append_turn(UserTurn(prompt=prompt))
            turn = self.log.append_turn(AssistantTurn())
            self.log.resolve_turn(turn.id, DecodeError(reason_text=str(e)))
            return turn
        except BaseException:
            self._finish_submission()
            raise

        self.log.append_turn(UserTurn(prompt=prompt, image_thumbnail=thumbnail))
        turn = self.log.append_turn(AssistantTurn())

        try:
            outcome = await self.client.submit(normalized, prompt, on_settle=self._finish_submission)
        except Exception as e:
            # a turn is never left pending
            logger.error("[ChatSession] Request for turn %s failed: %r", turn.id, e)
            self.log.resolve_turn(turn.id, TransportError(reason_text=str(e) or type(e).__name__))
            self._finish_submission()
            raise
        self._record(turn, outcome, prompt, thumbnail)
        return turn

    def _record(self, turn: AssistantTurn, outcome: Outcome, prompt: str, thumbnail: bytes) -> None:
        if not self.log.resolve_turn(turn.id, outcome):
            return
        if isinstance(outcome, Success):
            item = self.gallery.insert(
                outcome.image_url, prompt, source_image_url=to_data_uri(thumbnail)
            )
            logger.info("[ChatSession] Saved %s to gallery", item.id)

    def _finish_submission(self) -> None:
        self.processing = False
        self.clear_image()

    # ==========================
    # Conversation
    # ==========================
    def reset_conversation(self) -> None:
        if self.processing:
            raise SubmissionInProgress("Cannot clear the conversation while a request is running")
        self.log = ConversationLog()
        self.log.append_turn(SystemTurn(content=CLEARED_MESSAGE))
