from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from cultbot.domain import ConfigurationError

DEFAULT_HOST = "www.cure.fit"
DEFAULT_OSNAME = "ios"
DEFAULT_SLOT = "07:00:00"


def _split_csv(raw: str) -> list[str]:
    # "37, 9 ,8" -> ["37", "9", "8"]; empty items are dropped, order kept.
    return [p for p in (part.strip() for part in raw.split(",")) if p]


def _parse_workout_ids(raw: str) -> tuple[str, ...]:
    # CUREFIT_WORKOUT_IDS is in preference order, best first.
    ids = tuple(_split_csv(raw))
    if not ids:
        raise ConfigurationError("CUREFIT_WORKOUT_IDS is empty. Provide at least one workout id.")
    return ids


def _parse_telegram_chat_ids(raw: str) -> tuple[str, ...]:
    # dict keeps first-seen order while dropping repeats.
    chat_ids = tuple(dict.fromkeys(_split_csv(raw)))
    for chat_id in chat_ids:
        # Group chats have negative ids; 0 is never valid.
        try:
            value = int(chat_id)
        except ValueError as e:
            raise ConfigurationError(f"Invalid TELEGRAM_CHAT_ID value: {chat_id!r}. Expected integer chat id.") from e
        if value == 0:
            raise ConfigurationError(f"Invalid TELEGRAM_CHAT_ID value: {chat_id!r} is not a valid chat id")
    return chat_ids


@dataclass(frozen=True)
class Settings:
    host: str
    st: str
    at: str
    osname: str

    center_id: str
    workout_ids: tuple[str, ...]
    slot: str

    # Retry tuning
    # Full attempt = fetch schedule + select + book.
    retry_attempts: int = 6
    retry_delay_seconds: int = 20

    http_timeout_seconds: float = 20.0

    # Optional notifications; disabled unless both are set.
    telegram_bot_token: str | None = None
    telegram_chat_ids: tuple[str, ...] = ()

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_ids)


def _env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _require(name: str) -> str:
    value = _env(name)
    if value is None:
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


def _int_env(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _float_env(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Exported variables win over .env; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    st = _require("CUREFIT_ST")
    at = _require("CUREFIT_AT")
    center_id = _require("CUREFIT_CENTER_ID")
    workout_ids = _parse_workout_ids(_require("CUREFIT_WORKOUT_IDS"))

    retry_attempts = _int_env("RETRY_ATTEMPTS", 6)
    if retry_attempts < 1:
        raise ConfigurationError("RETRY_ATTEMPTS must be >= 1")

    retry_delay_seconds = _int_env("RETRY_DELAY_SECONDS", 20)
    if retry_delay_seconds < 0:
        raise ConfigurationError("RETRY_DELAY_SECONDS must be >= 0")

    http_timeout_seconds = _float_env("HTTP_TIMEOUT_SECONDS", 20.0)
    if http_timeout_seconds <= 0:
        raise ConfigurationError("HTTP_TIMEOUT_SECONDS must be > 0")

    chat_ids_raw = _env("TELEGRAM_CHAT_ID")
    telegram_chat_ids = _parse_telegram_chat_ids(chat_ids_raw) if chat_ids_raw else ()

    return Settings(
        host=_env("CUREFIT_HOST") or DEFAULT_HOST,
        st=st,
        at=at,
        osname=_env("CUREFIT_OSNAME") or DEFAULT_OSNAME,
        center_id=center_id,
        workout_ids=workout_ids,
        slot=_env("CUREFIT_SLOT") or DEFAULT_SLOT,
        retry_attempts=retry_attempts,
        retry_delay_seconds=retry_delay_seconds,
        http_timeout_seconds=http_timeout_seconds,
        telegram_bot_token=_env("TELEGRAM_BOT_TOKEN"),
        telegram_chat_ids=telegram_chat_ids,
    )
