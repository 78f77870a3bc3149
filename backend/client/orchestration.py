"""
Client orchestration - page-level state for the policy tools

Each page holds its input, one SubmissionController per trigger control and a
Toaster for transient notifications. Controllers move through
idle -> submitting -> success | failure and keep a cosmetic progress value that
ticks toward 95 while a call is outstanding. The progress value is a UI
affordance only: it is never reconciled with how long the call really takes.

Only one submission per controller may be in flight; there is no cancellation
and no timeout, so a hung call keeps the controller in ``submitting``.
"""
import asyncio
import contextlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, List, Literal, Optional, TypeVar

import structlog

from api.schemas import (
    AnalysisRequest,
    AnalysisResult,
    ChatMessage,
    ComparisonResult,
    UserContext,
)
from core.data_uri import encode_data_uri
from core.exceptions import InvalidFileTypeError, MissingInputError, NotAPolicyError, PolicyWiseException

logger = structlog.get_logger()

T = TypeVar("T")

ACCEPTED_MIME_TYPE = "application/pdf"
GENERIC_ERROR = "An error occurred. Please try again."


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Notification:
    level: Literal["success", "error"]
    message: str


class Toaster:
    """Collects transient notifications for the page to display."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def success(self, message: str) -> None:
        self.notifications.append(Notification("success", message))

    def error(self, message: str) -> None:
        logger.info("Error notification", message=message)
        self.notifications.append(Notification("error", message))

    @property
    def last(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None


@dataclass(frozen=True)
class SelectedFile:
    name: str
    mime_type: str
    data: bytes

    def to_data_uri(self) -> str:
        return encode_data_uri(self.data, self.mime_type)


def check_file_type(name: str, mime_type: str, data: bytes) -> SelectedFile:
    """Accept PDFs only; anything else raises InvalidFileTypeError."""
    if mime_type != ACCEPTED_MIME_TYPE:
        raise InvalidFileTypeError(mime_type)
    return SelectedFile(name=name, mime_type=mime_type, data=data)


class DocumentInput:
    """
    Pasted text or a selected PDF, never both.

    Typing text clears the file; selecting a valid file clears the text.
    """

    def __init__(self):
        self.text: str = ""
        self.file: Optional[SelectedFile] = None
        self.error: Optional[str] = None

    def set_text(self, text: str) -> None:
        self.text = text
        if text:
            self.file = None
        self.error = None

    def select_file(self, name: str, mime_type: str, data: bytes) -> SelectedFile:
        """
        Select a document file.

        A non-PDF leaves ``file`` as None, records the error and re-raises
        InvalidFileTypeError so the page can toast it.
        """
        try:
            selected = check_file_type(name, mime_type, data)
        except InvalidFileTypeError as e:
            self.file = None
            self.error = e.message
            raise

        self.file = selected
        self.text = ""
        self.error = None
        return selected

    def clear(self) -> None:
        self.text = ""
        self.file = None
        self.error = None

    @property
    def has_valid_input(self) -> bool:
        return bool(self.text.strip()) != (self.file is not None)

    def to_request(self) -> AnalysisRequest:
        if not self.has_valid_input:
            raise MissingInputError()
        if self.file is not None:
            return AnalysisRequest(document_data_uri=self.file.to_data_uri())
        return AnalysisRequest(document_text=self.text)


class SubmissionController(Generic[T]):
    """
    Explicit idle -> submitting -> success | failure state for one trigger.

    ``submit`` never raises for operation failures: the error message lands on
    ``error`` and in the toaster, and the controller moves to ``failure``.
    """

    def __init__(
        self,
        operation: Callable[..., Awaitable[T]],
        *,
        toaster: Optional[Toaster] = None,
        success_message: Optional[str] = None,
        tick_interval: float = 0.2,
        tick_step: int = 10,
        progress_cap: int = 95,
        ready: Optional[Callable[[], bool]] = None,
    ):
        self.operation = operation
        self.ready = ready or (lambda: True)
        self.toaster = toaster or Toaster()
        self.success_message = success_message
        self.tick_interval = tick_interval
        self.tick_step = tick_step
        self.progress_cap = progress_cap

        self.state = SubmissionState.IDLE
        self.progress = 0
        self.result: Optional[T] = None
        self.error: Optional[str] = None
        self.failure: Optional[BaseException] = None

    @property
    def is_submitting(self) -> bool:
        return self.state is SubmissionState.SUBMITTING

    @property
    def can_submit(self) -> bool:
        """False while a call is outstanding or the page input is not valid."""
        return not self.is_submitting and self.ready()

    async def _advance_progress(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.progress = min(self.progress + self.tick_step, self.progress_cap)

    def fail(self, error: BaseException) -> None:
        """Record a failure (also used for local input errors before any call)."""
        self.state = SubmissionState.FAILURE
        self.progress = 0
        self.failure = error
        self.error = error.message if isinstance(error, PolicyWiseException) else GENERIC_ERROR
        self.toaster.error(self.error)

    async def submit(self, *args: Any, **kwargs: Any) -> Optional[T]:
        if self.is_submitting:
            # Trigger is disabled while a call is outstanding
            logger.debug("Submission blocked, previous call still running")
            return None
        if not self.ready():
            self.fail(MissingInputError())
            return None

        self.state = SubmissionState.SUBMITTING
        self.progress = 0
        self.result = None
        self.error = None
        self.failure = None

        ticker = asyncio.create_task(self._advance_progress())
        try:
            result = await self.operation(*args, **kwargs)
        except Exception as e:
            logger.info("Submission failed", error_type=type(e).__name__)
            self.fail(e)
            return None
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker

        self.result = result
        self.state = SubmissionState.SUCCESS
        self.progress = 100
        if self.success_message:
            self.toaster.success(self.success_message)
        return result


class ChatTranscript:
    """
    Append-only chat history with a two-phase append for the user message.

    begin() tentatively adds the user message, commit() adds the bot reply,
    rollback() removes the tentative message so the transcript only shows
    what was actually answered.
    """

    def __init__(self, greeting: Optional[str] = "Hi! Ask me anything about your policy analysis."):
        self._messages: List[ChatMessage] = []
        if greeting:
            self._messages.append(ChatMessage(role="bot", content=greeting))
        self._pending: Optional[ChatMessage] = None

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def __len__(self) -> int:
        return len(self._messages)

    def begin(self, text: str) -> List[ChatMessage]:
        """Tentatively append a user message and return the history to send."""
        if self._pending is not None:
            raise RuntimeError("A message is already awaiting a reply")
        if not text.strip():
            raise MissingInputError(message="Please enter a question.", detail="Chat message is empty")

        self._pending = ChatMessage(role="user", content=text.strip())
        self._messages.append(self._pending)
        return list(self._messages)

    def commit(self, reply: ChatMessage) -> None:
        if self._pending is None:
            raise RuntimeError("No message awaiting a reply")
        if reply.role != "bot":
            raise ValueError("Reply must be a bot message")
        self._messages.append(reply)
        self._pending = None

    def rollback(self) -> None:
        if self._pending is None:
            return
        # The tentative message is always the last one
        if self._messages and self._messages[-1] is self._pending:
            self._messages.pop()
        self._pending = None

    async def send(
        self,
        text: str,
        chat: Callable[[List[ChatMessage]], Awaitable[ChatMessage]],
    ) -> ChatMessage:
        history = self.begin(text)
        try:
            reply = await chat(history)
        except Exception:
            self.rollback()
            raise
        self.commit(reply)
        return reply


class AnalysisWorkspace:
    """
    State for the analyze-policy page: document input, analysis, personalized
    recommendation and the chat about the result.
    """

    def __init__(
        self,
        analyze: Callable[[AnalysisRequest], Awaitable[AnalysisResult]],
        recommend: Callable[[AnalysisResult, UserContext], Awaitable[AnalysisResult]],
        chat: Callable[[AnalysisResult, List[ChatMessage]], Awaitable[ChatMessage]],
        toaster: Optional[Toaster] = None,
    ):
        self.toaster = toaster or Toaster()
        self.input = DocumentInput()
        self.analysis_submission: SubmissionController[AnalysisResult] = SubmissionController(
            analyze,
            toaster=self.toaster,
            success_message="Analysis complete!",
            ready=lambda: self.input.has_valid_input,
        )
        self.recommendation_submission: SubmissionController[AnalysisResult] = SubmissionController(
            recommend, toaster=self.toaster, success_message="Recommendation ready!"
        )
        self._chat = chat
        self.transcript = ChatTranscript()
        self.analysis: Optional[AnalysisResult] = None
        # Placeholder result (isPolicy=False) when the document was not a policy
        self.rejected_analysis: Optional[AnalysisResult] = None

    @property
    def can_analyze(self) -> bool:
        return self.analysis_submission.can_submit

    def select_file(self, name: str, mime_type: str, data: bytes) -> Optional[SelectedFile]:
        try:
            return self.input.select_file(name, mime_type, data)
        except InvalidFileTypeError as e:
            self.toaster.error(e.message)
            return None

    async def analyze(self) -> Optional[AnalysisResult]:
        if self.analysis_submission.is_submitting:
            return None
        if not self.input.has_valid_input:
            self.analysis_submission.fail(MissingInputError())
            return None

        self.analysis = None
        self.rejected_analysis = None
        self.transcript = ChatTranscript()

        result = await self.analysis_submission.submit(self.input.to_request())
        failure = self.analysis_submission.failure
        if isinstance(failure, NotAPolicyError):
            self.rejected_analysis = failure.analysis
        self.analysis = result
        return result

    async def personalize(self, user_context: UserContext) -> Optional[AnalysisResult]:
        if self.analysis is None:
            self.recommendation_submission.fail(MissingInputError(message="Analyze a policy first."))
            return None

        result = await self.recommendation_submission.submit(self.analysis, user_context)
        if result is not None:
            self.analysis = result
        return result

    async def ask(self, question: str) -> Optional[ChatMessage]:
        """Send a chat question; on failure the transcript is rolled back."""
        if self.analysis is None:
            self.toaster.error("Analyze a policy first.")
            return None
        if self.transcript.is_pending:
            return None

        analysis = self.analysis
        try:
            return await self.transcript.send(question, lambda history: self._chat(analysis, history))
        except PolicyWiseException as e:
            self.toaster.error(e.message)
        except Exception as e:
            logger.info("Chat failed", error_type=type(e).__name__)
            self.toaster.error("Sorry, I couldn't get a response. Please try again.")
        return None


class ComparisonWorkspace:
    """State for the compare-policies page: two PDFs, one narrative result."""

    def __init__(
        self,
        compare: Callable[[str, str], Awaitable[ComparisonResult]],
        toaster: Optional[Toaster] = None,
    ):
        self.toaster = toaster or Toaster()
        self.policy1: Optional[SelectedFile] = None
        self.policy2: Optional[SelectedFile] = None
        self.submission: SubmissionController[ComparisonResult] = SubmissionController(
            compare,
            toaster=self.toaster,
            success_message="Comparison complete! See the results below.",
            ready=lambda: self.policy1 is not None and self.policy2 is not None,
        )

    def select_policy(self, slot: int, name: str, mime_type: str, data: bytes) -> Optional[SelectedFile]:
        if slot not in (1, 2):
            raise ValueError("slot must be 1 or 2")
        try:
            selected = check_file_type(name, mime_type, data)
        except InvalidFileTypeError as e:
            selected = None
            self.toaster.error(e.message)
        setattr(self, f"policy{slot}", selected)
        return selected

    @property
    def can_compare(self) -> bool:
        return self.submission.can_submit

    async def compare(self) -> Optional[ComparisonResult]:
        if self.policy1 is None or self.policy2 is None:
            self.toaster.error("Please upload both policy documents to compare")
            return None
        return await self.submission.submit(self.policy1.to_data_uri(), self.policy2.to_data_uri())
