"""Pytest fixtures shared by the core test modules."""

import pytest

from core.controller import SessionController
from core.models import LLMSettings
from core.persistence.session_store import InMemoryConversationStore
from core.services.exchange import ConversationExchangeClient
from core.services.recognizer import TurnRecognizer
from core.services.speech import SpeechSynthesizer

from fakes import FakeBackend, FakeLLM, FakeNotifier, FakePlayer, FakeSpeechEngine


@pytest.fixture
def settings():
    return LLMSettings(model="gpt-4o-mini", temperature=0.0, max_tokens=100)


@pytest.fixture
def make_controller(settings):
    """Build a SessionController wired to fakes; returns (controller, parts)."""

    def _make(
        scenario_id="cold_calling",
        replies=None,
        chat_error=None,
        chat_hook=None,
        scoring_replies=None,
        scoring_error=None,
        supported=True,
        backend=None,
        player=None,
        notifier=None,
        store=None,
    ):
        parts = {
            "engine": FakeSpeechEngine(supported=supported),
            "backend": backend or FakeBackend(),
            "player": player or FakePlayer(),
            "chat_llm": FakeLLM(replies=replies, error=chat_error, hook=chat_hook),
            "scoring_llm": FakeLLM(replies=scoring_replies, error=scoring_error),
            "notifier": notifier or FakeNotifier(),
            "store": store if store is not None else InMemoryConversationStore(),
        }
        controller = SessionController(
            scenario_id=scenario_id,
            recognizer=TurnRecognizer(parts["engine"]),
            synthesizer=SpeechSynthesizer(parts["backend"], parts["player"]),
            exchange=ConversationExchangeClient(parts["chat_llm"], settings),
            scoring_llm=parts["scoring_llm"],
            scoring_settings=settings,
            teardown=parts["notifier"],
            store=parts["store"],
            user_id="trainee-1",
        )
        return controller, parts

    return _make
