from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tablehand.config.settings import Settings


def test_validate_api_key_rejects_default_in_production_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ENVIRONMENT", "production")

    with pytest.raises(ValidationError, match="Cannot use default API key in production"):
        Settings(environment="development", api_key="dev-api-key")


def test_telegram_allowed_chat_ids_validator_handles_empty_and_csv(
    monkeypatch, tmp_path: Path
) -> None:
    monkeypatch.chdir(tmp_path)

    s1 = Settings(telegram_allowed_chat_ids="")
    assert s1.telegram_allowed_chat_ids == []

    s2 = Settings(telegram_allowed_chat_ids=" 111, 222 , ,")
    assert s2.telegram_allowed_chat_ids == ["111", "222"]

    s3 = Settings(telegram_allowed_chat_ids=[333])
    assert s3.telegram_allowed_chat_ids == ["333"]


def test_validate_model_requires_llama_stack_model(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ValidationError, match="LLAMA_STACK_MODEL must be configured"):
        Settings(reasoning_provider="llama_stack", llama_stack_model="")


def test_production_requires_anthropic_key_for_real_engine(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ValidationError, match="ANTHROPIC_API_KEY is required"):
        Settings(
            environment="production",
            api_key="prod-key",
            use_fake_providers=False,
            reasoning_provider="anthropic",
            anthropic_api_key="",
        )


def test_production_requires_airtable_credentials(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ValidationError, match="AIRTABLE_API_KEY and AIRTABLE_BASE_ID"):
        Settings(
            environment="production",
            api_key="prod-key",
            use_fake_providers=False,
            reasoning_provider="fake",
            record_store_provider="real",
            airtable_api_key="",
        )


def test_fake_providers_skip_production_credential_checks(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    settings_obj = Settings(environment="production", api_key="prod-key", use_fake_providers=True)
    assert settings_obj.anthropic_api_key == ""


def test_memory_bounds_are_validated(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ValidationError, match="MAX_STEPS must be at least 1"):
        Settings(max_steps=0)
    with pytest.raises(ValidationError, match="SESSION_KEEP_HEAD must be smaller"):
        Settings(session_max_history=2, session_keep_head=2)


def test_defaults_match_documented_behavior(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    s = Settings()
    assert s.max_steps == 10
    assert s.session_max_history == 10
    assert s.session_keep_head == 2
    assert s.session_idle_timeout_seconds == 1800
    assert s.topic_similarity_threshold == 0.3


def test_table_labels_cover_every_table(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    s = Settings(airtable_customers_table="tblCustomers")
    assert s.table_labels["tblCustomers"] == "לקוח"
    assert len(s.table_labels) == 5


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("", []), ("1,2", ["1", "2"]), ("123, 456", ["123", "456"])],
)
def test_telegram_allowed_chat_ids_read_from_env(
    monkeypatch, tmp_path: Path, raw: str, expected: list[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TELEGRAM_ALLOWED_CHAT_IDS", raw)

    assert Settings().telegram_allowed_chat_ids == expected
