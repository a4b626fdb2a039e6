"""
Purpose: speech-to-text integration. Allow voice-based answers.

OpenAITranscriptionEngine behaves like a continuous browser recognizer built
from recorded utterances: each feed() transcribes one clip, reports streamed
text deltas as interim results and the finished text as a final result, then
ends the stream the way an engine ends after silence. The capture controller
decides whether to reopen it.
"""

from __future__ import annotations
import logging
from typing import Optional

from .. import config
from ..interfaces import LLMClient, RecognitionListener
from ..models import RecognitionResult
from ..utils.constants import NO_SPEECH_ERROR

logger = logging.getLogger(__name__)


class OpenAITranscriptionEngine:
    def __init__(self, llm: LLMClient, *, model: Optional[str] = None) -> None:
        self.llm = llm
        self.model = model or config.TRANSCRIBE_MODEL
        # whisper-1 has no streamed transcription.
        self.streaming = not self.model.startswith("whisper")
        self.locale: Optional[str] = None
        self.interim_results = True
        self._listener: Optional[RecognitionListener] = None

    @property
    def is_open(self) -> bool:
        return self._listener is not None

    def start(
        self,
        listener: RecognitionListener,
        *,
        locale: str,
        continuous: bool = True,
        interim_results: bool = True,
    ) -> None:
        self._listener = listener
        self.locale = locale
        self.interim_results = interim_results

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.on_end()

    async def feed(self, wav_bytes: bytes) -> None:
        """Transcribe one recorded utterance into the open stream."""
        listener = self._listener
        if listener is None:
            logger.debug("Dropping utterance: recognition stream is closed")
            return

        try:
            text = await self._transcribe(wav_bytes, listener)
        except Exception:
            logger.exception("Transcription failed")
            listener.on_error("network")
            self._end(listener)
            return

        if text:
            listener.on_result([RecognitionResult(transcript=text, is_final=True)])
        else:
            listener.on_error(NO_SPEECH_ERROR)
        self._end(listener)

    def _end(self, listener: RecognitionListener) -> None:
        # stop() may already have closed this stream while we were awaiting.
        if self._listener is listener:
            self._listener = None
            listener.on_end()

    async def _transcribe(self, wav_bytes: bytes, listener: RecognitionListener) -> str:
        if not self.streaming:
            return await self.llm.transcribe(wav_bytes, model=self.model)

        events = await self.llm.transcribe(wav_bytes, model=self.model, stream=True)
        partial = ""
        async for event in events:
            etype = getattr(event, "type", "")
            if etype == "transcript.text.delta":
                partial += getattr(event, "delta", "") or ""
                if self.interim_results:
                    listener.on_result(
                        [RecognitionResult(transcript=partial, is_final=False)]
                    )
            elif etype == "transcript.text.done":
                return (getattr(event, "text", "") or "").strip()
        return partial.strip()
