from __future__ import annotations

import logging
import signal
import threading

from . import bot, config, db, notifier, reconciler
from .scheduler import ScanScheduler


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.LOG_FILE:
        handlers.append(logging.FileHandler(config.LOG_FILE, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
    # Every long-poll request is logged at INFO otherwise.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def scan_once() -> reconciler.ScanSummary:
    """One reconciliation sweep with the configured settings."""
    return reconciler.run_scan(
        allow_list=config.TRACK_OFFER_IDS,
        page_size=config.PAGE_SIZE,
        concurrency=config.SCAN_CONCURRENCY,
        mode=config.SIZE_TRACKING_MODE,
        patterns=config.SIZE_ATTRIBUTE_PATTERNS,
        notify_new=config.NOTIFY_ON_NEW_PRODUCT,
    )


def report_error(error: BaseException) -> None:
    """Tell every subscribed chat that a sweep failed."""
    notifier.notify_all(notifier.error_message(str(error) or type(error).__name__))


def main() -> None:
    """Initialise and run the scan scheduler and the command loop."""
    config.validate()
    setup_logging()
    logger = logging.getLogger(__name__)

    logger.info("Initializing database at %s…", config.DB_PATH)
    db.init_db()

    logger.info(
        "Starting size monitor: mode=%s interval=%ss concurrency=%d page_size=%d "
        "allow-list=%d notify_new=%s log_api=%s",
        config.SIZE_TRACKING_MODE.value,
        config.POLL_INTERVAL_SECONDS,
        config.SCAN_CONCURRENCY,
        config.PAGE_SIZE,
        len(config.TRACK_OFFER_IDS),
        config.NOTIFY_ON_NEW_PRODUCT,
        config.LOG_API,
    )

    commands = bot.CommandPoller()
    t_bot = threading.Thread(target=commands.run, name="telegram-commands", daemon=True)
    t_bot.start()

    scheduler = ScanScheduler(scan_once, config.POLL_INTERVAL_SECONDS, on_error=report_error)

    def _shutdown(signum, _frame) -> None:
        logger.info("Received signal %s, shutting down.", signum)
        scheduler.stop()
        commands.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    scheduler.run_forever()


if __name__ == "__main__":
    main()
