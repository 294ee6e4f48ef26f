from types import SimpleNamespace

import pytest

from diga.constants.prompts import DEFAULT_QUOTE
from diga.services import gemini
from diga.services.gemini import GeminiClient, build_client


class _Models:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _client(response=None, error=None):
    models = _Models(response, error)
    return GeminiClient(api_key="chave", model="modelo-texto", image_model="modelo-imagem",
                        cooldown_seconds=60, client=SimpleNamespace(models=models)), models


def test_generate_intent_requests_json():
    client, models = _client(SimpleNamespace(text='  {"intent": "chat"}\n'))
    assert client.generate_intent("sistema", "DADOS", "oi") == '{"intent": "chat"}'
    call = models.calls[0]
    assert call["model"] == "modelo-texto"
    assert call["config"].response_mime_type == "application/json"


def test_generate_intent_propagates_errors():
    client, _ = _client(error=ConnectionError("sem rede"))
    with pytest.raises(ConnectionError):
        client.generate_intent("s", "c", "m")


def test_goal_image_becomes_data_url():
    part = SimpleNamespace(inline_data=SimpleNamespace(data=b"\x89PNG", mime_type="image/png"))
    response = SimpleNamespace(candidates=[
        SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(inline_data=None), part])),
    ])
    client, models = _client(response)
    assert client.generate_goal_image("Carro") == "data:image/png;base64,iVBORw=="
    assert models.calls[0]["model"] == "modelo-imagem"
    assert "Carro" in models.calls[0]["contents"]


def test_goal_image_failure_returns_none():
    client, _ = _client(error=RuntimeError("quota"))
    assert client.generate_goal_image("Carro") is None
    client, _ = _client(SimpleNamespace(candidates=[]))
    assert client.generate_goal_image("Carro") is None


def test_daily_quote():
    client, _ = _client(SimpleNamespace(text='"Guarde hoje."'))
    assert client.daily_quote() == "Guarde hoje."
    client, _ = _client(error=RuntimeError("offline"))
    assert client.daily_quote() == DEFAULT_QUOTE


def test_cooldown_window():
    client, _ = _client()
    assert client.is_available()
    client.set_cooldown()
    assert not client.is_available()
    client.set_cooldown(0)
    assert client.is_available()


def test_build_client_without_key(monkeypatch):
    monkeypatch.setattr(gemini, "GEMINI_API_KEY", None)
    assert build_client() is None
