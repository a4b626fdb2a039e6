"""
Purpose: Runtime configuration and logging setup.
Values come from the environment (optionally a .env file) so the UI,
services and tests share one source of defaults.
"""

from __future__ import annotations
import logging
import os
from typing import Optional

from dotenv import load_dotenv

from .models import LLMSettings

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

# LLM configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
QUESTION_TEMPERATURE = float(os.getenv("QUESTION_TEMPERATURE", "0.9"))
EVALUATION_TEMPERATURE = float(os.getenv("EVALUATION_TEMPERATURE", "0.3"))
EXPLANATION_TEMPERATURE = float(os.getenv("EXPLANATION_TEMPERATURE", "0.7"))
GENERATION_TIMEOUT_S = float(os.getenv("GENERATION_TIMEOUT_S", "90"))
OUTPUT_LANGUAGE = os.getenv("OUTPUT_LANGUAGE", "English")

# History configuration
HISTORY_DIR = os.getenv("HISTORY_DIR", os.path.join(PROJECT_ROOT, "data"))
HISTORY_STORAGE_KEY = os.getenv("HISTORY_STORAGE_KEY", "interview_history")

# Speech configuration
SPEECH_LOCALE = os.getenv("SPEECH_LOCALE", "en-US")
TRANSCRIBE_MODEL = os.getenv("TRANSCRIBE_MODEL", "gpt-4o-mini-transcribe")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_MAX_TOKENS = {"question": 600, "evaluation": 1800, "explanation": 1500}
_TEMPERATURES = {
    "question": QUESTION_TEMPERATURE,
    "evaluation": EVALUATION_TEMPERATURE,
    "explanation": EXPLANATION_TEMPERATURE,
}


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler once; later calls are no-ops."""
    logging.basicConfig(
        level=(level or LOG_LEVEL),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def get_llm_settings(kind: str, *, model: Optional[str] = None) -> LLMSettings:
    """Per-call settings for 'question', 'evaluation' or 'explanation'."""
    if kind not in _TEMPERATURES:
        raise ValueError(f"Unknown generation kind: {kind!r}")
    settings = LLMSettings(
        model=model or LLM_MODEL,
        temperature=_TEMPERATURES[kind],
        max_tokens=_MAX_TOKENS[kind],
    )
    if kind == "evaluation":
        settings.response_format = {"type": "json_object"}
    return settings
