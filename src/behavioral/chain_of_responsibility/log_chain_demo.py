"""
log_chain_demo.py — Drives the default log chain with sample messages.

Every dispatch runs in its own try block: a fatal message does not stop the
unknown message after it from being dispatched. Failures are printed, and the
process exit status is always 0.
"""

from __future__ import annotations

import logging
from typing import Sequence

from behavioral.chain_of_responsibility.log_chain import (
    DEFAULT_ERROR_LOG,
    ChainError,
    LogHandler,
    LogMessage,
    PathLike,
    ResourceUnavailable,
    build_default_chain,
)

__all__ = ["SAMPLE_MESSAGES", "dispatch_all", "main"]

logger = logging.getLogger(__name__)

SAMPLE_MESSAGES: Sequence[LogMessage] = (
    LogMessage.warning("An error may occur"),
    LogMessage.error("Error happened"),
    LogMessage.fatal("Fatal error happened"),
    LogMessage.unknown("Unknown error happened"),
)


def dispatch_all(chain: LogHandler, messages: Sequence[LogMessage]) -> int:
    """
    Dispatches each message independently, printing any failure.

    :param chain: Head of the handler chain.
    :param messages: Messages to submit, in order.
    :return: Number of dispatches that failed.
    """
    failures = 0
    for message in messages:
        try:
            chain.dispatch(message)
        except ChainError as exc:
            failures += 1
            logger.warning("Dispatch of %s message failed: %s", message.severity.name, exc)
            print(exc)
    return failures


def main(error_log_path: PathLike = DEFAULT_ERROR_LOG) -> int:
    """
    Builds the default chain and runs the sample messages through it.

    :param error_log_path: Error log location.
    :return: Process exit status (always 0).
    """
    try:
        chain = build_default_chain(error_log_path)
    except ResourceUnavailable as exc:
        logger.error("Could not build log chain: %s", exc)
        print(exc)
        return 0

    try:
        with chain:
            dispatch_all(chain, SAMPLE_MESSAGES)
    except ResourceUnavailable as exc:
        logger.error("Could not release log chain: %s", exc)
        print(exc)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
