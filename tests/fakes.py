"""Stand-ins for the OpenAI SDK client and the notifier."""

from types import SimpleNamespace

import httpx

from app.core.config import Settings
from app.services.ai_client import AIClient
from app.services.notifications import Notifier
from app.services.verification_advisor import VerificationAdvisor

CHAT_URL = "https://ai.test/v1/chat/completions"


class FakeCompletions:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(reply=None, error=None):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(reply, error)))


def make_advisor(reply=None, error=None) -> VerificationAdvisor:
    settings = Settings(ai_api_key="test-key")
    return VerificationAdvisor(AIClient(settings, client=fake_openai(reply, error)))


def chat_request() -> httpx.Request:
    return httpx.Request("POST", CHAT_URL)


def chat_response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=chat_request())


class RecordingNotifier(Notifier):
    def __init__(self):
        self.outcomes = []

    def notify(self, outcome):
        self.outcomes.append(outcome)


class ExplodingNotifier(Notifier):
    def notify(self, outcome):
        raise RuntimeError("mail server down")
