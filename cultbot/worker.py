from __future__ import annotations

import logging
import time
from dataclasses import replace

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from cultbot.config import Settings
from cultbot.cult_client import CultClient, format_body
from cultbot.domain import BookingResult, Candidate, NoAvailabilityError, TransientError
from cultbot.selector import parse_schedule, select_candidates
from cultbot.telegram_notifier import TelegramError, send_telegram_message

logger = logging.getLogger(__name__)


def _describe(candidate: Candidate) -> str:
    when = f" {candidate.start_time}-{candidate.end_time}" if candidate.start_time else ""
    return f"activityId={candidate.activity_id}, workoutId={candidate.workout_id}, state={candidate.state}{when}"


def _failure_summary(exc: BaseException) -> str:
    # Never str(exc) here: httpx errors embed the request URL, which contains the bot token.
    if isinstance(exc, httpx.HTTPStatusError):
        return f"{type(exc).__name__} (status {exc.response.status_code})"
    if isinstance(exc, TelegramError):
        return f"{type(exc).__name__}: {exc}"
    return type(exc).__name__


def _notify(settings: Settings, text: str) -> None:
    """Send text to every configured chat. Failures are logged, never raised."""
    if not settings.telegram_enabled:
        return

    failed: list[str] = []
    for chat_id in settings.telegram_chat_ids:
        try:
            send_telegram_message(
                bot_token=settings.telegram_bot_token or "",
                chat_id=chat_id,
                text=text,
                timeout_seconds=settings.http_timeout_seconds,
            )
        except Exception as e:
            logger.warning("Telegram notification to chat_id=%s failed: %s", chat_id, _failure_summary(e))
            failed.append(chat_id)

    if failed:
        logger.warning("Telegram notification not delivered to %d of %d chats", len(failed), len(settings.telegram_chat_ids))


def _attempt_error(retry_state: RetryCallState) -> str | None:
    outcome = retry_state.outcome
    if outcome is None or not outcome.failed:
        return None
    exc = outcome.exception()
    text = str(exc).strip()
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


def _attempt_logger(total: int):
    def _log_before_attempt(retry_state: RetryCallState) -> None:
        logger.info("Attempt %s/%s: fetching classes...", retry_state.attempt_number, total)

    return _log_before_attempt


def _log_after_attempt(retry_state: RetryCallState) -> None:
    if retry_state.outcome is not None and retry_state.outcome.failed:
        reason = _attempt_error(retry_state)
        logger.warning("Attempt %s failed: %s", retry_state.attempt_number, reason or "unknown error")


def _log_before_sleep(retry_state: RetryCallState) -> None:
    sleep_seconds = getattr(retry_state.next_action, "sleep", None)
    if sleep_seconds is None:
        logger.info("Waiting before attempt %s...", retry_state.attempt_number + 1)
        return
    logger.info("Waiting %.0fs before attempt %s", sleep_seconds, retry_state.attempt_number + 1)


def _attempt_booking(settings: Settings, *, dry_run: bool = False) -> BookingResult:
    with CultClient(settings) as client:
        raw = client.get_classes()

        schedule = parse_schedule(raw)
        candidates = select_candidates(
            schedule,
            center_id=settings.center_id,
            slot=settings.slot,
            preferred_workout_ids=settings.workout_ids,
        )
        if not candidates:
            raise NoAvailabilityError("No AVAILABLE classes found for your filters (slot/center/workoutIds).")

        chosen = candidates[0]
        logger.info("Found candidate: %s (%d matching)", _describe(chosen), len(candidates))

        if dry_run:
            logger.info("Dry run: not booking activityId=%s", chosen.activity_id)
            return BookingResult(candidate=chosen, response=None, attempt=0, dry_run=True)

        logger.info("Booking activityId=%s ...", chosen.activity_id)
        booked = client.book_class(chosen.activity_id)
        return BookingResult(candidate=chosen, response=booked, attempt=0)


def _attempt_booking_with_retry(settings: Settings, *, dry_run: bool = False) -> BookingResult:
    retrying = Retrying(
        stop=stop_after_attempt(settings.retry_attempts),
        wait=wait_fixed(settings.retry_delay_seconds),
        retry=retry_if_exception_type(TransientError),
        before=_attempt_logger(settings.retry_attempts),
        after=_log_after_attempt,
        before_sleep=_log_before_sleep,
        sleep=time.sleep,
        reraise=True,
    )

    result = retrying(_attempt_booking, settings, dry_run=dry_run)
    return replace(result, attempt=retrying.statistics.get("attempt_number", 1))


def run_booking(settings: Settings, *, dry_run: bool = False) -> BookingResult:
    logger.info(
        "Host=%s Slot=%s Center=%s Workouts=%s",
        settings.host,
        settings.slot,
        settings.center_id,
        ",".join(settings.workout_ids),
    )
    logger.info("Will retry up to %s times, delay %ss", settings.retry_attempts, settings.retry_delay_seconds)

    try:
        result = _attempt_booking_with_retry(settings, dry_run=dry_run)
    except Exception as e:
        logger.error("All attempts failed (%s: %s)", type(e).__name__, e)
        _notify(
            settings,
            text=(
                "CultBot: booking FAILED.\n"
                f"Slot {settings.slot}, center {settings.center_id}.\n"
                f"Reason: {type(e).__name__}: {e}"
            ),
        )
        raise

    if result.dry_run:
        logger.info("Dry run finished on attempt %s: %s", result.attempt, _describe(result.candidate))
        return result

    logger.info("Booked on attempt %s. Response: %s", result.attempt, format_body(result.response))
    _notify(
        settings,
        text=(
            "CultBot: class booked.\n"
            f"Slot {settings.slot}, center {settings.center_id}.\n"
            f"{_describe(result.candidate)}"
        ),
    )
    return result
