"""Utilities for robustly extracting JSON from LLM responses."""

from __future__ import annotations
import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")
_OBJECT_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json (or bare ```) fence and a trailing ``` fence."""
    t = (text or "").strip()
    t = _FENCE_OPEN.sub("", t)
    t = _FENCE_CLOSE.sub("", t)
    return t.strip()


def extract_object(text: str) -> dict[str, Any]:
    """
    Parse the first JSON object in an LLM reply.
    - Handles code fences and leading/trailing prose.
    - Returns {} when nothing parseable is found.
    """
    t = strip_code_fences(text)
    if not t:
        return {}
    try:
        data = json.loads(t)
    except ValueError:
        m = _OBJECT_BLOCK.search(t)
        if not m:
            logger.debug("No JSON object in reply: %.80r", t)
            return {}
        try:
            data = json.loads(m.group(0))
        except ValueError:
            logger.debug("Unparseable JSON block in reply: %.80r", t)
            return {}
    return data if isinstance(data, dict) else {}


def require_object(text: str, err: str = "Expected a JSON object.") -> dict[str, Any]:
    """Strict: must return a non-empty object, else raise ValueError."""
    data = extract_object(text)
    if not data:
        raise ValueError(err)
    return data


def to_str_list(x: Any) -> list[str]:
    """Convert None, str, or list of str to list[str], dropping blanks."""
    if x is None:
        return []
    if isinstance(x, str):
        x = [x]
    if not isinstance(x, list):
        return []
    return [s.strip() for s in x if isinstance(s, str) and s.strip()]
