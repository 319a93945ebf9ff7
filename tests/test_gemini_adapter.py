from __future__ import annotations

from types import SimpleNamespace

import pytest

from adapters.base import AdapterError
from adapters.gemini import (
    FALLBACK_TOPICS,
    GeminiTextGenerator,
    load_gemini_config,
    parse_topics,
)


class _FakeModel:
    def __init__(self, text: str | None = None, exc: Exception | None = None) -> None:
        self.text = text
        self.exc = exc
        self.prompts: list[str] = []

    def generate_content(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        if self.exc is not None:
            raise self.exc
        return SimpleNamespace(text=self.text)


def _generator(model: _FakeModel) -> GeminiTextGenerator:
    return GeminiTextGenerator(load_gemini_config({"apiKey": "test"}), model=model)


def test_parse_topics_accepts_fenced_json() -> None:
    text = """```json
    [
      {"title": "Rover finds water", "score": 91.6, "category": "Science", "keywords": ["mars"]},
      {"title": "", "score": 40},
      {"title": "Markets rally", "score": 250}
    ]
    ```"""
    topics = parse_topics(text)
    assert [topic.title for topic in topics] == ["Rover finds water", "Markets rally"]
    assert topics[0].score == 92
    assert topics[0].keywords == ["mars"]
    assert topics[1].score == 100


def test_parse_topics_accepts_wrapped_object() -> None:
    topics = parse_topics('{"topics": [{"title": "Solar record", "score": 70}]}')
    assert topics[0].title == "Solar record"


@pytest.mark.parametrize(
    "text",
    ["not json", "[]", '[{"score": 50}]', '{"items": []}', '[{"title": "x", "score": Infinity}]'],
)
def test_parse_topics_rejects_unusable_output(text: str) -> None:
    with pytest.raises(ValueError):
        parse_topics(text)


def test_analyze_falls_back_when_vendor_fails() -> None:
    topics = _generator(_FakeModel(exc=RuntimeError("quota exceeded"))).analyze_trending_topics()
    assert topics == list(FALLBACK_TOPICS)
    assert [topic.score for topic in topics] == [92, 87, 84]


def test_analyze_falls_back_on_garbage() -> None:
    topics = _generator(_FakeModel(text="Sorry, I cannot help with that.")).analyze_trending_topics()
    assert topics == list(FALLBACK_TOPICS)


def test_analyze_falls_back_on_non_finite_scores() -> None:
    text = '[{"title": "x", "score": Infinity}, {"title": "y", "score": -Infinity}]'
    topics = _generator(_FakeModel(text=text)).analyze_trending_topics()
    assert topics == list(FALLBACK_TOPICS)


def test_script_generation_wraps_vendor_errors() -> None:
    generator = _generator(_FakeModel(exc=RuntimeError("boom")))
    with pytest.raises(AdapterError) as excinfo:
        generator.generate_script("Rover finds water")
    assert excinfo.value.service == "gemini"


def test_script_prompt_mentions_topic_and_duration() -> None:
    model = _FakeModel(text="  A script.  ")
    assert _generator(model).generate_script("Rover finds water", 120) == "A script."
    assert "Rover finds water" in model.prompts[0]
    assert "120 seconds" in model.prompts[0]


def test_missing_api_key_is_adapter_error(monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_AI_KEY", raising=False)
    generator = GeminiTextGenerator(load_gemini_config())
    with pytest.raises(AdapterError):
        generator.generate_description("t", "s")
    assert generator.check_health() is False


def test_config_overrides_take_precedence(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_MODEL", "env-model")
    config = load_gemini_config({"model": "override-model", "temperature": 0.2, "maxTokens": 512})
    assert config.model == "override-model"
    assert config.temperature == 0.2
    assert config.max_output_tokens == 512


def test_health_check_expects_ok() -> None:
    assert _generator(_FakeModel(text="OK.")).check_health() is True
    assert _generator(_FakeModel(text="no")).check_health() is False
