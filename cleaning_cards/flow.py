"""Client app flow as an explicit state machine.

Screens are states; user actions and analysis results are events. The
transition table below is the only way the current screen changes.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from .errors import CleaningCardsError
from .image_processing import prepare_photo
from .models import CleaningCard, FollowupAnalysisResult, RoomPhoto


class AppState(str, Enum):
    ONBOARDING = "onboarding"
    WELCOME = "welcome"
    CAMERA = "camera"
    SESSION = "session"
    REVIEW = "review"


class InvalidTransition(CleaningCardsError):
    def __init__(self, state: AppState, event: str):
        self.state = state
        self.event = event
        super().__init__(f"event {event!r} is not allowed in state {state.value!r}")


TRANSITIONS = {
    (AppState.ONBOARDING, "onboarding_complete"): AppState.WELCOME,
    (AppState.WELCOME, "start_camera"): AppState.CAMERA,
    (AppState.CAMERA, "back"): AppState.WELCOME,
    (AppState.CAMERA, "cards_ready"): AppState.SESSION,
    (AppState.CAMERA, "review_ready"): AppState.REVIEW,
    (AppState.SESSION, "start_camera"): AppState.CAMERA,
    (AppState.SESSION, "back"): AppState.WELCOME,
    (AppState.REVIEW, "continue_session"): AppState.SESSION,
    (AppState.REVIEW, "start_camera"): AppState.CAMERA,
    (AppState.REVIEW, "restart"): AppState.WELCOME,
    (AppState.SESSION, "restart"): AppState.WELCOME,
}


class AppFlow:
    def __init__(self, has_seen_onboarding: bool = False):
        self.state = AppState.WELCOME if has_seen_onboarding else AppState.ONBOARDING

    def can(self, event: str) -> bool:
        return (self.state, event) in TRANSITIONS

    def dispatch(self, event: str) -> AppState:
        try:
            self.state = TRANSITIONS[(self.state, event)]
        except KeyError:
            raise InvalidTransition(self.state, event) from None
        return self.state


class CleaningSession:
    """Owns the flow plus the photo and cards of the current cleaning round.

    The first capture runs an initial analysis; captures after that compare
    against the previous photo and cards. Only one capture runs at a time.
    """

    def __init__(self, client: Any, flow: Optional[AppFlow] = None, settings: Optional[Any] = None, locale: str = "ja-JP"):
        self.client = client
        self.flow = flow or AppFlow()
        self.settings = settings
        self.locale = locale
        self.photo: Optional[RoomPhoto] = None
        self.cards: List[CleaningCard] = []
        self.pending: List[CleaningCard] = []
        self.review: Optional[FollowupAnalysisResult] = None
        self.error_message: Optional[str] = None
        self.processing = False

    @property
    def state(self) -> AppState:
        return self.flow.state

    def _prepare(self, data: bytes, filename: Optional[str], mime_type: Optional[str]) -> RoomPhoto:
        kwargs = {}
        if self.settings is not None:
            kwargs = {
                "max_size": self.settings.image_max_size,
                "quality": self.settings.image_quality,
                "heic_quality": self.settings.heic_quality,
            }
        return prepare_photo(data, filename=filename, mime_type=mime_type, locale=self.locale, **kwargs)

    def capture(self, data: bytes, filename: Optional[str] = None, mime_type: Optional[str] = "image/jpeg") -> bool:
        """Prepare and analyze a photo taken on the camera screen.

        Returns True when the flow moved on; on failure the flow stays on the
        camera screen and error_message holds the text to show.
        """
        if self.flow.state != AppState.CAMERA:
            raise InvalidTransition(self.flow.state, "capture")
        if self.processing:
            raise RuntimeError("a photo is already being processed")
        self.processing = True
        self.error_message = None
        try:
            photo = self._prepare(data, filename, mime_type)
            if self.photo is None or not self.cards:
                result = self.client.analyze(photo, locale=self.locale)
                self.cards = list(result.cards)
                self.pending = list(result.cards)
                self.photo = photo
                self.review = None
                self.flow.dispatch("cards_ready")
            else:
                review = self.client.analyze_followup(photo, self.photo, self.cards, locale=self.locale)
                self.review = review
                self.cards = review.remaining + review.new_tasks
                self.pending = list(self.cards)
                self.photo = photo
                self.flow.dispatch("review_ready")
            return True
        except CleaningCardsError as e:
            self.error_message = str(e)
            return False
        finally:
            self.processing = False

    def complete_card(self, index: int = 0) -> Optional[CleaningCard]:
        if self.flow.state != AppState.SESSION:
            raise InvalidTransition(self.flow.state, "complete_card")
        if not self.pending:
            return None
        return self.pending.pop(index)

    def restart(self) -> None:
        self.flow.dispatch("restart")
        self.photo = None
        self.cards = []
        self.pending = []
        self.review = None
        self.error_message = None
