import argparse
import logging

from cultbot.config import load_settings
from cultbot.worker import run_booking


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    # httpx logs every request URL at INFO; Telegram URLs carry the bot token.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main() -> int:
    parser = argparse.ArgumentParser(description="CultBot: book a Cult fitness class slot")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch the schedule and pick a class, but do not book it",
    )
    args = parser.parse_args()

    _setup_logging()
    settings = load_settings()

    # Configuration errors and exhausted retries propagate: the process exits non-zero.
    run_booking(settings, dry_run=args.dry_run)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
