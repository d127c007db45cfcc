import logging
from typing import Any, List, Optional, Protocol

from src.core.pages.models import PresentationCue

logger = logging.getLogger(__name__)


class Presentation(Protocol):
    """Fire-and-forget sink for animation, audio, and particle cues."""

    def emit(self, cue: str, **params: Any) -> None: ...


class CueRecorder:
    def __init__(self, *, forward_to: Optional[Presentation] = None) -> None:
        self._cues: List[PresentationCue] = []
        self._forward_to = forward_to

    def emit(self, cue: str, **params: Any) -> None:
        self._cues.append(PresentationCue(name=cue, params=params))
        if self._forward_to is None:
            return
        try:
            self._forward_to.emit(cue, **params)
        except Exception:
            logger.warning("Presentation cue delivery failed. Cue=%s", cue, exc_info=True)

    @property
    def names(self) -> List[str]:
        return [cue.name for cue in self._cues]

    def drain(self) -> List[PresentationCue]:
        cues, self._cues = self._cues, []
        return cues
