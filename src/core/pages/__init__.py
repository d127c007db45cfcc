from src.core.pages.celebrate import CelebratePageController
from src.core.pages.create import CreatePageController, SubmissionContext
from src.core.pages.models import (
    AcceptOutcome,
    CelebrateView,
    CreateForm,
    CreateOutcome,
    DodgeState,
    PresentationCue,
    RespondView,
    TimelineStep,
    TrackView,
)
from src.core.pages.presentation import CueRecorder, Presentation
from src.core.pages.respond import RespondPageController, RespondSession
from src.core.pages.track import TrackPageController, TrackSession

__all__ = [
    "AcceptOutcome",
    "CelebratePageController",
    "CelebrateView",
    "CreateForm",
    "CreateOutcome",
    "CreatePageController",
    "CueRecorder",
    "DodgeState",
    "Presentation",
    "PresentationCue",
    "RespondPageController",
    "RespondSession",
    "RespondView",
    "SubmissionContext",
    "TimelineStep",
    "TrackPageController",
    "TrackSession",
    "TrackView",
]
