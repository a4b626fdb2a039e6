"""
Purpose: Continuous speech capture for spoken answers.
Wraps a recognition engine that delivers interim and final segments and ends
on its own after a short silence. Only finalized segments reach the text sink.

Restart rule: when the engine ends and the user did not press stop, the stream
is opened again so one recording session spans many engine runs. The
_user_requested_stop flag is the only thing that tells the two apart.

The engine is optional; without one, start() raises SpeechUnavailableError and
typed input keeps working.
"""

from __future__ import annotations
import logging
from typing import Callable, Optional, Sequence

from .. import config
from ..interfaces import RecognitionEngine
from ..models import RecognitionResult
from ..utils.constants import NO_SPEECH_ERROR

logger = logging.getLogger(__name__)


class SpeechUnavailableError(RuntimeError):
    """No speech recognition capability on this platform."""


class SpeechCaptureController:
    def __init__(
        self,
        engine: Optional[RecognitionEngine],
        on_text: Callable[[str], None],
        *,
        locale: Optional[str] = None,
    ) -> None:
        self.engine = engine
        self.on_text = on_text
        self.locale = locale or config.SPEECH_LOCALE
        self.last_error: Optional[str] = None
        self._user_requested_stop = False
        self._listening = False

    @property
    def available(self) -> bool:
        return self.engine is not None

    @property
    def is_listening(self) -> bool:
        return self._listening and not self._user_requested_stop

    def start(self) -> None:
        if self.engine is None:
            raise SpeechUnavailableError("Speech recognition is not available.")
        self._user_requested_stop = False
        if self._listening:
            return
        self.last_error = None
        self._open()

    def stop(self) -> None:
        self._user_requested_stop = True
        was_listening = self._listening
        self._listening = False
        if self.engine is not None and was_listening:
            self.engine.stop()

    # ----- engine callbacks -----

    def on_result(self, results: Sequence[RecognitionResult]) -> None:
        for r in results:
            if not r.is_final:
                continue
            text = (r.transcript or "").strip()
            if text:
                self.on_text(text)

    def on_end(self) -> None:
        # Stopped by the user, or already torn down by on_error.
        if self._user_requested_stop or not self._listening:
            self._listening = False
            return
        logger.debug("Recognition stream ended; restarting")
        self._open()

    def on_error(self, code: str) -> None:
        if code == NO_SPEECH_ERROR:
            return
        logger.error("Speech recognition error: %s", code)
        self.last_error = code
        self._listening = False

    def _open(self) -> None:
        self._listening = True
        try:
            self.engine.start(
                self,
                locale=self.locale,
                continuous=True,
                interim_results=True,
            )
        except Exception:
            logger.exception("Could not open the recognition stream")
            self._listening = False
            self.last_error = "start-failed"
