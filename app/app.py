"""
UI layer
Purpose: Streamlit-only glue. Renders widgets/tabs, collects user inputs, and delegates
all work to the session controller. Keeps UI concerns (layout/state widgets) separate
from business logic so logic can be unit tested without Streamlit.
"""

import hashlib

import streamlit as st
from audio_recorder_streamlit import audio_recorder

from core.config import load_config
from core.controller import SessionController
from core.logging_setup import setup_logging
from core.models import LLMSettings, ScenarioId, TurnPhase, ValidationError
from core.persistence.db import init_db, make_engine
from core.persistence.session_store import (
    SQLConversationStore,
    score_label,
    summarize_history,
)
from core.prompts.scenarios import SALES_SCENARIOS, get_scenario
from core.services.exchange import ConversationExchangeClient
from core.services.llm_openai import OpenAILLMClient
from core.services.pricing import session_cost
from core.services.recognizer import TurnRecognizer
from core.services.session_registry import SessionRegistry
from core.services.speech import OpenAITTSBackend, SpeechSynthesizer
from core.services.voice import StreamlitAudioPlayer, WhisperSpeechEngine

CONFIG = load_config()
logger = setup_logging("sales_trainer", CONFIG.log_level)

# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="Sales Conversation Trainer",
    page_icon="📞",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ---------------------------
# UI constants
# ---------------------------
SCENARIO_CHOICES = [s.value for s in ScenarioId]
PHASE_CAPTIONS = {
    TurnPhase.IDLE: ("Ready to Continue", "Click the microphone to respond"),
    TurnPhase.LISTENING: (
        "Listening...",
        "Speak naturally and practice your sales conversation",
    ),
    TurnPhase.PROCESSING: ("Customer is thinking...", "Waiting for the customer's reply"),
    TurnPhase.SPEAKING: ("Customer Speaking...", "The customer is responding to you"),
}

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
st_session.setdefault("controller", None)
st_session.setdefault("llm", None)
st_session.setdefault("api_key_set", bool(CONFIG.openai_api_key))
st_session.setdefault("scenario", SCENARIO_CHOICES[0])
st_session.setdefault("user_id", CONFIG.default_user_id)
st_session.setdefault("show_feedback", False)
st_session.setdefault("last_voice_sig", None)


# ---------------------------
# Shared resources
# ---------------------------
@st.cache_resource
def get_registry() -> SessionRegistry:
    return SessionRegistry()


@st.cache_resource
def get_store(database_url: str) -> SQLConversationStore:
    engine = make_engine(database_url)
    init_db(engine)
    return SQLConversationStore(engine)


# ---------------------------
# Helpers
# ---------------------------
def get_controller():
    """Return the live session controller, if any."""
    return st_session.get("controller")


def get_llm():
    """Return the OpenAI client for this browser session, building it lazily."""
    if st_session.llm is None and CONFIG.openai_api_key:
        try:
            st_session.llm = OpenAILLMClient(api_key=CONFIG.openai_api_key)
        except RuntimeError as e:
            st.error(f"OpenAI client init failed: {e}")
    return st_session.llm


def build_controller(scenario_id: str) -> SessionController:
    """Wire recognizer, synthesizer, exchange and scoring into a new session."""
    llm = get_llm()
    engine = WhisperSpeechEngine(llm, model=CONFIG.stt_model)
    player = StreamlitAudioPlayer()
    controller = SessionController(
        scenario_id=scenario_id,
        recognizer=TurnRecognizer(engine),
        synthesizer=SpeechSynthesizer(
            OpenAITTSBackend(llm, voice=CONFIG.tts_voice, model=CONFIG.tts_model),
            player,
        ),
        exchange=ConversationExchangeClient(
            llm,
            LLMSettings(
                model=CONFIG.chat_model,
                temperature=0.8,
                top_p=0.9,
                max_tokens=CONFIG.max_reply_tokens,
            ),
        ),
        scoring_llm=llm,
        scoring_settings=LLMSettings(
            model=CONFIG.feedback_model, temperature=0.2, max_tokens=700
        ),
        teardown=get_registry(),
        store=get_store(CONFIG.database_url),
        user_id=st_session.user_id,
    )
    get_registry().open(controller.session_token, scenario_id, st_session.user_id)
    controller.bind_lifecycle()
    return controller


def end_current_session(reason: str) -> None:
    """Tear down the live session (navigation away, reset, new scenario)."""
    controller = get_controller()
    if controller is not None:
        controller.end_session(reason=reason)
    st_session.controller = None
    st_session.show_feedback = False
    st_session.last_voice_sig = None


def start_session() -> None:
    """Mount a fresh session for the selected scenario."""
    end_current_session("new session")
    controller = build_controller(st_session.scenario)
    controller.mount()
    st_session.controller = controller


def on_scenario_change() -> None:
    end_current_session("scenario changed")


def on_mic_click() -> None:
    controller = get_controller()
    if controller:
        controller.toggle_mic()


def on_get_feedback() -> None:
    controller = get_controller()
    if not controller:
        return
    try:
        with st.spinner("Generating feedback..."):
            report = controller.request_feedback()
    except ValidationError as e:
        st.toast(str(e), icon="⚠️")
        return
    if report is None:
        st.toast(controller.last_error or "Failed to generate feedback.", icon="⚠️")
        return
    st_session.show_feedback = True


def render_scenario_info(scenario_id: str) -> None:
    scenario = get_scenario(scenario_id)
    profile = scenario.customer_profile
    with st.expander(f"ℹ️ {scenario.title}", expanded=False):
        st.write(scenario.description)
        cols = st.columns(2)
        with cols[0]:
            st.markdown("**Customer**")
            st.markdown(
                f"- Role: {profile.role}\n"
                f"- Company: {profile.company}\n"
                f"- Personality: {profile.personality}\n"
                f"- Mood: {profile.initial_mood}"
            )
            st.markdown("**Challenges**")
            st.markdown("\n".join(f"- {c}" for c in profile.challenges))
        with cols[1]:
            st.markdown("**Your objectives**")
            st.markdown("\n".join(f"- {o}" for o in scenario.objectives))


def render_feedback(report, scenario_id: str) -> None:
    """Score, strengths/improvements/recommendations and commentary."""
    label = ScenarioId.parse(scenario_id).label
    st.metric(f"Your {label} score", f"{report.score}/100", score_label(report.score))
    st.progress(report.score / 100)

    cols = st.columns(3)
    sections = [
        ("**Strengths**", report.strengths),
        ("**Areas for improvement**", report.improvements),
        ("**Recommendations**", report.recommendations),
    ]
    for (title, items), col in zip(sections, cols):
        with col:
            st.markdown(title)
            if items:
                st.markdown("\n".join(f"- {it}" for it in items))
            else:
                st.markdown("—")
    if report.scenario_feedback:
        st.markdown("**Scenario feedback**")
        st.write(report.scenario_feedback)


def render_transcript(messages: list[dict[str, str]], height: int = 420) -> None:
    box = st.container(height=height, border=True)
    with box:
        for msg in messages:
            with st.chat_message(msg["role"]):
                st.markdown(msg["content"])


# ---------------------------
# Sidebar
# ---------------------------
with st.sidebar:
    st.header("Settings")

    if not st_session.api_key_set:
        user_api_key = st.sidebar.text_input(
            "OpenAI API key", type="password", placeholder="sk-..."
        )
        if user_api_key:
            try:
                st_session.llm = OpenAILLMClient(api_key=user_api_key)
                st_session.api_key_set = True
                st.rerun()
            except RuntimeError as e:
                st.error(f"OpenAI client init failed: {e}")

    st.text_input("Trainee ID", key="user_id")
    st.selectbox(
        "Scenario",
        SCENARIO_CHOICES,
        key="scenario",
        format_func=lambda v: get_scenario(v).title,
        on_change=on_scenario_change,
    )

    controller = get_controller()
    if controller:
        cost = session_cost(
            chat_model=CONFIG.chat_model,
            tts_model=CONFIG.tts_model,
            tokens_in=controller.tokens_in,
            tokens_out=controller.tokens_out,
            chars_spoken=controller.synthesizer.chars_spoken,
        )
        st.caption(
            f"Tokens in/out: {controller.tokens_in}/{controller.tokens_out} · "
            f"est. ${cost:.4f}"
        )
        st.button(
            "End session",
            type="secondary",
            on_click=end_current_session,
            args=("ended by trainee",),
        )

    missing = CONFIG.validate()
    if missing and not st_session.api_key_set:
        st.caption("Missing settings: " + ", ".join(missing))


# ---------------------------
# Tabs
# ---------------------------
about_tab, practice_tab, history_tab = st.tabs(["About", "Practice", "History"])

with about_tab:
    st.subheader("Rehearse sales conversations out loud")
    st.markdown(
        """
        - Pick a scenario in the sidebar and start a session.
        - The simulated customer opens the call; press the microphone to answer.
        - When you are done, press **Get Feedback** for a scored review.
        - Past sessions and scores are under **History**.
        """
    )
    for scenario in SALES_SCENARIOS.values():
        st.markdown(f"**{scenario.title}**: {scenario.description}")

with practice_tab:
    controller = get_controller()
    if not st_session.api_key_set:
        st.info("Add your OpenAI API key in the sidebar to begin.")
    elif controller is None:
        render_scenario_info(st_session.scenario)
        st.button("Start session", type="primary", on_click=start_session)
    elif controller.phase == TurnPhase.UNSUPPORTED:
        st.error(
            "Speech Recognition Not Supported. Voice capture is not available "
            "in this environment, so this session cannot continue."
        )
        render_transcript(controller.history(), height=200)
        st.button("Go back", on_click=end_current_session, args=("unsupported",))
    elif st_session.show_feedback and controller.feedback:
        st.subheader(f"Feedback · {controller.scenario.title}")
        render_feedback(controller.feedback, controller.scenario_id.value)
        with st.expander("Conversation"):
            render_transcript(controller.history(), height=300)
        st.button("Practice again", type="primary", on_click=start_session)
    else:
        render_scenario_info(controller.scenario_id.value)

        player = controller.synthesizer.player
        if player.pending:
            html = player.render()
            if html:
                st.html(html)

        render_transcript(controller.history())

        title, hint = PHASE_CAPTIONS.get(controller.phase, ("", ""))
        st.markdown(f"### {title}")
        st.caption(hint)
        if controller.recognizer.interim_text:
            st.caption(f"… {controller.recognizer.interim_text}")
        if controller.last_error:
            st.caption(f"⚠️ {controller.last_error}")

        mic_label = {
            TurnPhase.LISTENING: "Stop Listening",
            TurnPhase.SPEAKING: "Stop Customer",
        }.get(controller.phase, "Start Speaking")

        bcol1, bcol2 = st.columns([1, 1])
        with bcol1:
            st.button(
                f"🎙️ {mic_label}",
                type="primary",
                on_click=on_mic_click,
                disabled=controller.phase == TurnPhase.PROCESSING,
            )
        with bcol2:
            st.button(
                "Get Feedback",
                on_click=on_get_feedback,
                disabled=len(controller.transcript) < 2
                or controller.phase == TurnPhase.PROCESSING,
            )

        engine = controller.recognizer.engine
        if controller.phase == TurnPhase.LISTENING and engine.active:
            wav_bytes = audio_recorder(
                pause_threshold=2,
                sample_rate=16_000,
                text="Press to record",
                icon_size="2x",
            )
            if wav_bytes:
                sig = hashlib.sha1(wav_bytes).hexdigest()
                if sig != st_session.get("last_voice_sig"):
                    st_session.last_voice_sig = sig
                    with st.spinner("Transcribing…"):
                        engine.feed_audio(wav_bytes)
                    st.rerun()

        typed = st.chat_input("Or type your reply…")
        if typed is not None and typed.strip():
            with st.spinner("Customer is thinking..."):
                controller.submit_text(typed.strip())
            st.rerun()

with history_tab:
    store = get_store(CONFIG.database_url)
    records = store.list_for_user(st_session.user_id)
    stats = summarize_history(records)

    mcols = st.columns(3)
    mcols[0].metric("Sessions", stats["sessions"])
    mcols[1].metric(
        "Average score",
        "—" if stats["average_score"] is None else f"{stats['average_score']}",
    )
    mcols[2].metric(
        "Best score", "—" if stats["best_score"] is None else f"{stats['best_score']}"
    )

    if not records:
        st.caption("No sessions yet. Finish a practice session to see it here.")
    for record in records:
        header = (
            f"{record.title} · "
            f"{record.score if record.score is not None else '—'}/100 "
            f"({score_label(record.score)})"
        )
        with st.expander(header):
            transcript = record.transcript()
            st.caption(f"{len(transcript)} exchanges · {record.created_at:%Y-%m-%d %H:%M}")
            render_transcript(transcript.to_messages(), height=260)
            report = record.feedback_report()
            if report:
                render_feedback(report, record.scenario_type)

    st.divider()
    if st.button("Delete my session history", type="secondary"):
        removed = store.delete_for_user(st_session.user_id)
        st.toast(f"Deleted {removed} session(s).", icon="🧹")
        st.rerun()
