"""
Purpose: Thin async client wrapper around OpenAI.
One place for auth, retries, model options, response/usage normalization.

Constructed once at process start and injected into the generation service and
the transcription engine; there is no module-level client.

Testing: Mock SDK calls; assert it maps usage and errors correctly.
"""

from __future__ import annotations
import asyncio
import io
import logging
from typing import Optional

from openai import APIError, APITimeoutError, AsyncOpenAI, RateLimitError

from ..models import LLMSettings

logger = logging.getLogger(__name__)

RETRY_DELAYS = (0.5, 1.0, 2.0, 4.0)


class OpenAILLMClient:
    def __init__(self, api_key: str, *, timeout: float = 60.0):
        self.api_key = api_key
        if not self.api_key:
            raise RuntimeError("Missing OPENAI_API_KEY")
        try:
            self.client = AsyncOpenAI(api_key=self.api_key, timeout=timeout)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize OpenAI client: {e}") from e

    async def _with_retries(self, fn, *args, **kwargs):
        for delay in RETRY_DELAYS:
            try:
                return await fn(*args, **kwargs)
            except (RateLimitError, APITimeoutError, APIError) as e:
                logger.warning("OpenAI call failed (%s); retrying in %.1fs", e, delay)
                await asyncio.sleep(delay)
        return await fn(*args, **kwargs)

    async def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]:
        payload = []
        if system:
            payload.append({"role": "system", "content": system})
        payload.extend(messages)

        kwargs = dict(
            model=settings.model,
            messages=payload,
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_tokens=settings.max_tokens,
            frequency_penalty=settings.frequency_penalty,
            presence_penalty=settings.presence_penalty,
        )
        if settings.response_format:
            kwargs["response_format"] = settings.response_format

        cc = await self._with_retries(self.client.chat.completions.create, **kwargs)
        text = cc.choices[0].message.content or ""
        usage = getattr(cc, "usage", None)
        tokens_in = getattr(usage, "prompt_tokens", 0) if usage else 0
        tokens_out = getattr(usage, "completion_tokens", 0) if usage else 0
        return text, {
            "model": cc.model,
            "tokens_in": tokens_in,
            "tokens_out": tokens_out,
        }

    async def transcribe(self, audio: bytes, *, model: str, stream: bool = False):
        """
        Transcribe WAV bytes. With stream=False returns the text; with
        stream=True returns the SDK event stream (text deltas, then done).
        """

        def wav_file():
            buf = io.BytesIO(audio)
            buf.name = "input.wav"
            return buf

        if stream:
            return await self.client.audio.transcriptions.create(
                model=model, file=wav_file(), stream=True
            )

        async def call_tr():
            return await self.client.audio.transcriptions.create(
                model=model, file=wav_file()
            )

        resp = await self._with_retries(call_tr)
        return (resp.text or "").strip()
