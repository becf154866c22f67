import pytest

from knowledge_quiz.ai.gemini_client import GeminiClient, GeminiConfig, ask_json, parse_json_object


@pytest.mark.parametrize(
    "raw",
    [
        '{"nextQuestion": "Q?"}',
        '```json\n{"nextQuestion": "Q?"}\n```',
        'Here you go: {"nextQuestion": "Q?"} hope it helps',
    ],
)
def test_parse_json_object_extracts_payload(raw):
    assert parse_json_object(raw) == {"nextQuestion": "Q?"}


@pytest.mark.parametrize("raw", ["not json at all", "[1, 2, 3]", "{broken"])
def test_parse_json_object_rejects_bad_payloads(raw):
    with pytest.raises(RuntimeError):
        parse_json_object(raw)


def test_ask_json_reraises_last_error():
    class Flaky:
        calls = 0

        def generate_json(self, prompt, document=None):
            Flaky.calls += 1
            raise RuntimeError(f"fail {Flaky.calls}")

    with pytest.raises(RuntimeError, match="fail 2"):
        ask_json(Flaky(), "prompt", dict, attempts=2)


def test_client_requires_api_key():
    with pytest.raises(ValueError):
        GeminiClient(GeminiConfig(api_key=""))


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", " secret ")
    monkeypatch.setenv("GEMINI_TIMEOUT_SEC", "15")

    cfg = GeminiConfig.from_env()

    assert cfg.api_key == "secret"
    assert cfg.timeout_sec == 15.0
