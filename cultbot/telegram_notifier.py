from __future__ import annotations

import httpx

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramError(RuntimeError):
    pass


def send_telegram_message(
    *,
    bot_token: str,
    chat_id: str,
    text: str,
    timeout_seconds: float = 20.0,
    transport: httpx.BaseTransport | None = None,
) -> None:
    payload = {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }

    with httpx.Client(base_url=TELEGRAM_API_URL, timeout=timeout_seconds, transport=transport) as client:
        r = client.post(f"/bot{bot_token}/sendMessage", json=payload)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok", False):
            raise TelegramError(f"Telegram API error: {data.get('description') or data}")
