"""
Purpose: Session history, one HistorySession per interview session.
Why: Reopen past sessions, survive a crash mid-evaluation.

The whole collection lives in a single JSON blob under a fixed key. It is read
once by load() and rewritten after every change; there is no partial update.

Testing: InMemoryStorage for state tests; JsonFileStorage with tmp_path for
reload and corrupt-blob cases.
"""

from __future__ import annotations
import json
import logging
from typing import Optional, Sequence

from ..interfaces import BlobStorage
from ..models import HistorySession, Message
from ..utils.constants import (
    PREVIEW_ELLIPSIS,
    PREVIEW_MAX_CHARS,
    UNRECORDED_PREVIEW,
    WELCOME_MESSAGE,
)

logger = logging.getLogger(__name__)


def truncate_preview(text: str, max_chars: int = PREVIEW_MAX_CHARS) -> str:
    """Clip to max_chars, adding an ellipsis if clipped."""
    text = (text or "").strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + PREVIEW_ELLIPSIS


def derive_preview(
    messages: Sequence[Message],
    *,
    question: Optional[str] = None,
    prior_preview: Optional[str] = None,
    welcome_text: str = WELCOME_MESSAGE,
) -> str:
    """
    Preview precedence: explicit question > prior stored preview (unless it is
    the sentinel) > first non-welcome AI text message > sentinel.
    """
    if question and question.strip():
        return truncate_preview(question)
    if prior_preview and prior_preview != UNRECORDED_PREVIEW:
        return prior_preview
    for m in messages:
        if m.is_ai_text and m.content != welcome_text and m.content.strip():
            return truncate_preview(m.content)
    return UNRECORDED_PREVIEW


class HistoryStore:
    def __init__(
        self,
        storage: BlobStorage,
        *,
        key: str,
        welcome_text: str = WELCOME_MESSAGE,
    ) -> None:
        self.storage = storage
        self.key = key
        self.welcome_text = welcome_text
        self._sessions: list[HistorySession] = []

    @property
    def sessions(self) -> list[HistorySession]:
        """Snapshot, most recently created first."""
        return list(self._sessions)

    def get(self, session_id: str) -> Optional[HistorySession]:
        return next((s for s in self._sessions if s.id == session_id), None)

    def load(self) -> list[HistorySession]:
        """Restore from storage. Any read or parse failure yields empty history."""
        self._sessions = []
        try:
            raw = self.storage.read(self.key)
        except (OSError, UnicodeDecodeError):
            logger.exception("Could not read history blob %r", self.key)
            return []
        if not raw:
            return []

        try:
            records = json.loads(raw)
        except ValueError:
            logger.exception("History blob %r is not valid JSON; starting empty", self.key)
            return []
        if not isinstance(records, list):
            logger.error("History blob %r is not a list; starting empty", self.key)
            return []

        seen: set[str] = set()
        for rec in records:
            try:
                session = HistorySession.from_dict(rec)
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning("Skipping malformed history record: %s", e)
                continue
            if session.id in seen or not session.messages:
                continue
            seen.add(session.id)
            self._sessions.append(session)

        logger.info("Loaded %d history sessions", len(self._sessions))
        return self.sessions

    def upsert(
        self, session: HistorySession, question: Optional[str] = None
    ) -> Optional[HistorySession]:
        """
        Replace the record sharing session.id (keeping its start_time) or insert
        a new one. Sessions holding only the opening message are not saved.
        """
        if len(session.messages) <= 1:
            logger.debug("Not persisting session %s with %d message(s)",
                         session.id, len(session.messages))
            return None

        idx = next(
            (i for i, s in enumerate(self._sessions) if s.id == session.id), None
        )
        prior = self._sessions[idx] if idx is not None else None

        record = HistorySession(
            id=session.id,
            topic=session.topic,
            messages=list(session.messages),
            start_time=prior.start_time if prior else session.start_time,
            preview=derive_preview(
                session.messages,
                question=question,
                prior_preview=prior.preview if prior else None,
                welcome_text=self.welcome_text,
            ),
            phase=session.phase,
            current_question=session.current_question,
        )

        if idx is None:
            self._sessions.insert(0, record)
        else:
            self._sessions[idx] = record
        self._save()
        return record

    def delete(self, session_id: str) -> bool:
        before = len(self._sessions)
        self._sessions = [s for s in self._sessions if s.id != session_id]
        if len(self._sessions) == before:
            return False
        self._save()
        return True

    def clear(self) -> None:
        self._sessions = []
        self._save()

    def _save(self) -> None:
        text = json.dumps(
            [s.to_dict() for s in self._sessions], ensure_ascii=False
        )
        try:
            self.storage.write(self.key, text)
        except OSError:
            logger.exception("Could not write history blob %r", self.key)
