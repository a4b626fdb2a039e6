"""Fixed texts and limits shared by the controller, the history store and the UI."""

WELCOME_MESSAGE = (
    "**Welcome to the Senior Backend Interview Simulator.**\n\n"
    "I will act as your technical interviewer. Pick a topic from the sidebar "
    "to start the interview.\n\n"
    "**Tip:** after I evaluate your answer, you can ask about anything that is "
    "still unclear right in the input box and I will explain it."
)

READY_MESSAGE = "Let's start the interview on **{topic}**."

EVALUATION_INTRO = "Here is my evaluation of your answer:"

QUESTION_FALLBACK = (
    "Sorry, something went wrong while generating the interview question. "
    "Please try again."
)
EVALUATION_FALLBACK_ANALYSIS = (
    "An error occurred during AI evaluation; this result is only a system fallback."
)
EVALUATION_FALLBACK_MISSING_POINT = "System error"
EVALUATION_FALLBACK_IDEAL_ANSWER = "Not available"
EXPLANATION_FALLBACK = (
    "Sorry, the explanation service is temporarily unavailable. "
    "Please try again later."
)

PREVIEW_MAX_CHARS = 60
PREVIEW_ELLIPSIS = "..."
UNRECORDED_PREVIEW = "Unrecorded question"

NO_SPEECH_ERROR = "no-speech"
