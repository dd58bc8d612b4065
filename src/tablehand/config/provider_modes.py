"""Provider mode helpers.

This centralizes the "effective provider" rules so the API, CLI and tests agree
on which reasoning engine and record store are wired in.

Rule:
- Per-provider setting is the source of truth
- `use_fake_providers=True` downgrades any real provider to its fake
"""

from __future__ import annotations

from typing import Literal

from tablehand.config.settings import Settings

ReasoningMode = Literal["anthropic", "llama_stack", "fake"]
RecordStoreMode = Literal["real", "fake"]


def _coerce_bool(value: object, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "y", "on"}:
            return True
        if lowered in {"0", "false", "no", "n", "off"}:
            return False
    return default


def effective_reasoning_provider(settings: Settings) -> ReasoningMode:
    mode = str(getattr(settings, "reasoning_provider", "anthropic")).lower()
    if mode not in {"anthropic", "llama_stack", "fake"}:
        mode = "anthropic"
    if _coerce_bool(getattr(settings, "use_fake_providers", False), default=False):
        return "fake"
    return mode  # type: ignore[return-value]


def effective_record_store_provider(settings: Settings) -> RecordStoreMode:
    mode = str(getattr(settings, "record_store_provider", "real")).lower()
    if mode != "fake" and not _coerce_bool(
        getattr(settings, "use_fake_providers", False), default=False
    ):
        return "real"
    return "fake"
