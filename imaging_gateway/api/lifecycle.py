"""
Process-level logging setup and last-resort exception logging.
"""

import asyncio
import logging
import sys
import threading
from typing import Optional

logger = logging.getLogger("imaging_gateway")

LOG_LEVEL_ENV = "GATEWAY_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _log_uncaught(exc_type, exc_value, exc_traceback) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


def _log_thread_exception(args: threading.ExceptHookArgs) -> None:
    if args.exc_type is SystemExit:
        return
    logger.critical(
        "Uncaught exception in thread %s",
        args.thread.name if args.thread else "?",
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    exc = context.get("exception")
    logger.error(
        "Unhandled async failure: %s",
        context.get("message", "no message"),
        exc_info=(type(exc), exc, exc.__traceback__) if exc else None,
    )


def install_safety_net(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Log otherwise-uncaught failures instead of letting them go unseen.

    This is diagnostics only: nothing is retried or recovered.

    Args:
        loop: Event loop to attach to (the running loop when omitted, if any)
    """
    sys.excepthook = _log_uncaught
    threading.excepthook = _log_thread_exception
    if loop is None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
    loop.set_exception_handler(_log_loop_exception)
