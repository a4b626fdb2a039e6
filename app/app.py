"""
UI layer
Purpose: Streamlit-only glue. Renders widgets, collects user inputs, and delegates
all work to the session controller. Keeps UI concerns (layout/state widgets)
separate from the interview logic so that logic can be unit tested without Streamlit.
"""

import asyncio
import hashlib
from datetime import datetime

import streamlit as st
from audio_recorder_streamlit import audio_recorder

from coach import config
from coach.controller import SessionController
from coach.models import HistorySession, MessageKind, Phase, Sender, Topic
from coach.persistence.history_store import HistoryStore
from coach.persistence.storage import JsonFileStorage
from coach.services.generation import InterviewGenerationService
from coach.services.llm_openai import OpenAILLMClient
from coach.services.speech_capture import SpeechCaptureController, SpeechUnavailableError
from coach.services.voice import OpenAITranscriptionEngine

config.configure_logging()

# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="Backend Interview Coach",
    page_icon="🎯",
    layout="wide",
    initial_sidebar_state="expanded",
)

TOPICS = list(Topic)
PHASE_HINTS = {
    Phase.AWAITING_ANSWER: "Type your detailed answer here…",
    Phase.REVIEWING: "Unclear about the analysis? Ask a follow-up question…",
}

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
st_session.setdefault("controller", None)
st_session.setdefault("speech", None)
st_session.setdefault("engine", None)
st_session.setdefault("loop", None)
st_session.setdefault("api_key", None)
st_session.setdefault("topic", TOPICS[0].name)
st_session.setdefault("voice_mode", False)
st_session.setdefault("last_voice_sig", None)
st_session.setdefault("speech_notice_shown", False)


# ---------------------------
# Helpers
# ---------------------------
def run_async(coro):
    """Run a coroutine on the one event loop kept for this browser session."""
    if st_session.loop is None:
        st_session.loop = asyncio.new_event_loop()
    return st_session.loop.run_until_complete(coro)


def get_controller() -> SessionController | None:
    return st_session.get("controller")


def build_controller(api_key: str) -> None:
    """Construct the client, store, controller and speech capture once."""
    llm = OpenAILLMClient(api_key=api_key)
    controller = st_session.controller
    if controller is not None:
        # Key changed: keep the open session and history, swap the client.
        controller.service = InterviewGenerationService(llm)
        st_session.engine.llm = llm
        return

    history = HistoryStore(
        JsonFileStorage(config.HISTORY_DIR), key=config.HISTORY_STORAGE_KEY
    )
    history.load()
    controller = SessionController(InterviewGenerationService(llm), history)
    engine = OpenAITranscriptionEngine(llm)

    st_session.controller = controller
    st_session.engine = engine
    st_session.speech = SpeechCaptureController(
        engine, controller.append_pending_input
    )


def format_session_label(s: HistorySession) -> str:
    started = datetime.fromtimestamp(s.start_time / 1000)
    return f"{started:%m-%d %H:%M} · {s.topic.value}: {s.preview}"


def render_evaluation(msg) -> None:
    ev = msg.evaluation
    st.markdown(msg.content)
    st.metric("Score", f"{ev.score}/100")
    st.progress(ev.score / 100)
    st.markdown("**Analysis**")
    st.markdown(ev.analysis)
    if ev.missing_points:
        st.markdown("**Missing points**")
        st.markdown("\n".join(f"- {p}" for p in ev.missing_points))
    with st.expander("Reference answer"):
        st.markdown(ev.ideal_answer or "—")


def set_voice_mode(enabled: bool) -> None:
    speech: SpeechCaptureController = st_session.speech
    if speech is None:
        return
    if not enabled:
        speech.stop()
        return
    try:
        speech.start()
    except SpeechUnavailableError as e:
        if not st_session.speech_notice_shown:
            st.toast(str(e), icon="⚠️")
            st_session.speech_notice_shown = True


# ---------------------------
# SIDEBAR: settings, topics, history
# ---------------------------
with st.sidebar:
    st.markdown("# Settings")

    user_api_key = st.text_input(
        "OpenAI API key",
        value=config.OPENAI_API_KEY,
        type="password",
        help="We do not store your key. It stays in your session only.",
    )
    if not user_api_key:
        st.warning("Please enter your API key in the sidebar to continue.")
        st.stop()
    if user_api_key != st_session.api_key:
        try:
            build_controller(user_api_key)
            st_session.api_key = user_api_key
        except Exception as e:
            st_session.api_key = None
            st.error(f"OpenAI client init failed: {e}")
            st.stop()

    controller = get_controller()
    st.divider()

    st.markdown("## Topic")
    st.selectbox(
        "Interview topic",
        [t.name for t in TOPICS],
        key="topic",
        format_func=lambda name: Topic[name].value,
        disabled=controller.is_busy,
    )
    if st.button("Start interview", type="primary", disabled=controller.is_busy):
        with st.spinner("Generating the interview scenario…"):
            run_async(controller.start_topic(Topic[st_session.topic]))
        st.rerun()
    st.divider()

    st.markdown("## History")
    sessions = controller.history.sessions
    if not sessions:
        st.caption("No saved sessions yet.")
    for s in sessions:
        c1, c2 = st.columns([5, 1])
        if c1.button(format_session_label(s), key=f"open_{s.id}"):
            controller.load_history(s)
            st.rerun()
        if c2.button("✕", key=f"del_{s.id}", help="Delete this session"):
            controller.history.delete(s.id)
            st.rerun()
    if sessions and st.button("Clear history"):
        controller.history.clear()
        st.rerun()

# ---------------------------
# Main area: transcript + input
# ---------------------------
st.title("Backend Interview Coach")
controller = get_controller()
if controller.current_topic:
    st.caption(f"Topic: **{controller.current_topic.value}**")

transcript = st.container(height=560, border=True)
with transcript:
    for msg in controller.messages:
        role = "assistant" if msg.sender == Sender.AI else "user"
        with st.chat_message(role):
            if msg.kind == MessageKind.EVALUATION and msg.evaluation:
                render_evaluation(msg)
            else:
                st.markdown(msg.content)

if controller.can_advance:
    if st.button("Finish this question and move to the next one →"):
        with st.spinner("Generating the next question…"):
            run_async(controller.advance_to_next_question())
        st.rerun()

speech: SpeechCaptureController = st_session.speech
voice_mode = st.toggle(
    "🎙️ Voice mode", value=st_session.voice_mode, disabled=not speech.available
)
if voice_mode != st_session.voice_mode:
    st_session.voice_mode = voice_mode
    set_voice_mode(voice_mode)

if st_session.voice_mode:
    if not speech.is_listening and not speech.last_error:
        set_voice_mode(True)
    if speech.last_error:
        st.caption(f"Speech capture stopped: {speech.last_error}")
    wav_bytes = audio_recorder(
        pause_threshold=2,
        sample_rate=16_000,
        text="Press to record",
        icon_size="2x",
    )
    if wav_bytes:
        sig = hashlib.sha1(wav_bytes).hexdigest()
        if sig != st_session.last_voice_sig:
            st_session.last_voice_sig = sig
            with st.spinner("Transcribing…"):
                run_async(st_session.engine.feed(wav_bytes))

    controller.pending_input = st.text_area(
        "Transcribed answer (editable)",
        value=controller.pending_input,
        height=140,
        disabled=not controller.can_submit,
    )
    if st.button("Send", disabled=not (controller.can_submit and controller.pending_input.strip())):
        with st.spinner("Thinking…"):
            run_async(controller.submit_input())
        st.rerun()
else:
    raw = st.chat_input(
        PHASE_HINTS.get(controller.phase, "Pick a topic to start"),
        disabled=not controller.can_submit,
    )
    if raw is not None and raw.strip():
        spinner = (
            "Analysing your answer…"
            if controller.phase == Phase.AWAITING_ANSWER
            else "Working out an explanation…"
        )
        with st.spinner(spinner):
            run_async(controller.submit_input(raw))
        st.rerun()

st.divider()
st.caption(
    "Privacy tip: Do not paste sensitive personal data. Sessions are stored locally."
)
