from __future__ import annotations

from adapters import build_adapters, get_adapters, reset_adapters


def test_build_adapters_merges_stored_configuration(storage, monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    monkeypatch.setenv("GEMINI_MODEL", "env-model")
    monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_KEY", raising=False)
    storage.create_api_configuration(service="gemini", config={"model": "stored-model", "temperature": 0.3})
    storage.create_api_configuration(service="tts", config={"voice": "en-IN-Wavenet-C"})
    storage.create_api_configuration(service="drive", config={"folderPrefix": "Shorts"})
    storage.create_api_configuration(service="youtube", config={"defaultPrivacy": "private"}, is_active=False)

    adapters = build_adapters(storage)

    assert adapters.text.config.api_key == "env-key"
    assert adapters.text.config.model == "stored-model"
    assert adapters.text.config.temperature == 0.3
    assert adapters.speech.config.script_voice.voice == "en-IN-Wavenet-C"
    assert adapters.files.defaults == {"folderPrefix": "Shorts"}
    assert adapters.video_host.defaults == {}


def test_build_adapters_without_storage(monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_KEY", raising=False)
    adapters = build_adapters()
    assert adapters.files.defaults == {}


def test_get_adapters_rebuilds_when_configuration_changes(storage, monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "env-key")
    monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_KEY", raising=False)
    reset_adapters()
    try:
        storage.create_api_configuration(service="gemini", config={"model": "gemini-1.5-flash"})
        first = get_adapters(storage)
        assert get_adapters(storage) is first

        storage.update_api_configuration("gemini", config={"model": "gemini-1.5-pro"})
        second = get_adapters(storage)

        assert second is not first
        assert second.text.config.model == "gemini-1.5-pro"
        assert get_adapters(storage) is second
    finally:
        reset_adapters()
