"""
log_chain.py — Chain-of-Responsibility for severity-based log dispatch.

Each handler in the chain is bound to exactly one Severity. A message enters
at the head and is passed along until a handler accepts it:

    UnknownHandler -> WarningHandler -> ErrorHandler -> FatalHandler

Accepting handlers either complete the dispatch (warning → stdout,
error → append-only log file) or abort it with TerminalSeverity
(fatal, unknown). A message that falls off the end raises NoHandlerFound.

The error handler owns an open file for its whole lifetime; closing any node
closes it and every successor, and chains are context managers so the file
is released on every exit path.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, Dict, Iterable, List, Optional, TextIO, Type, Union

__all__ = [
    "DEFAULT_ERROR_LOG",
    "Severity",
    "LogMessage",
    "DispatchReceipt",
    "ChainError",
    "ResourceUnavailable",
    "NoHandlerFound",
    "TerminalSeverity",
    "LogHandler",
    "WarningHandler",
    "ErrorHandler",
    "FatalHandler",
    "UnknownHandler",
    "HANDLER_TYPES",
    "build_chain",
    "build_default_chain",
]

logger = logging.getLogger(__name__)

DEFAULT_ERROR_LOG = "ErrorMessage.txt"

PathLike = Union[str, Path]


# ---------- Data Models ----------
class Severity(Enum):
    """Closed classification of a log message."""
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class LogMessage:
    """
    Immutable message passed through the handler chain.

    :ivar severity: Decides which handler accepts the message.
    :ivar text: Human-readable text; several messages may share it.
    """
    severity: Severity
    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.severity, Severity):
            raise TypeError(f"severity must be a Severity, got {self.severity!r}")

    @classmethod
    def warning(cls, text: str) -> "LogMessage":
        return cls(Severity.WARNING, text)

    @classmethod
    def error(cls, text: str) -> "LogMessage":
        return cls(Severity.ERROR, text)

    @classmethod
    def fatal(cls, text: str) -> "LogMessage":
        return cls(Severity.FATAL, text)

    @classmethod
    def unknown(cls, text: str) -> "LogMessage":
        return cls(Severity.UNKNOWN, text)


@dataclass(frozen=True, slots=True)
class DispatchReceipt:
    """
    Outcome of a dispatch that completed normally.

    :ivar severity: Severity of the handler that accepted the message.
    :ivar hops: Delegations before acceptance (position in chain minus one).
    """
    severity: Severity
    hops: int


# ---------- Errors ----------
class ChainError(RuntimeError):
    """
    Base class for every failure surfaced by the log chain.
    """


class ResourceUnavailable(ChainError):
    """
    Raised when the error log cannot be opened, or is used after close.

    :param message: Human-readable description of the failure.
    :param path: Log file path involved.
    """

    def __init__(self, message: str, path: PathLike) -> None:
        super().__init__(message)
        self.path = Path(path)


class NoHandlerFound(ChainError):
    """
    Raised when a message reaches the end of the chain unaccepted.

    :param message: The unrouted message.
    :param visited: Number of handlers that declined it.
    """

    def __init__(self, message: LogMessage, visited: int) -> None:
        super().__init__(
            f"Error: No handler for {message.severity.name} message: {message.text}"
        )
        self.message = message
        self.visited = visited


class TerminalSeverity(ChainError):
    """
    Raised by handlers whose acceptance aborts the dispatch (fatal, unknown).

    :param label: Prefix describing the severity, e.g. "Fatal Error".
    :param message: The accepted message.
    """

    def __init__(self, label: str, message: LogMessage) -> None:
        super().__init__(f"{label}: {message.text}")
        self.message = message

    @property
    def text(self) -> str:
        """
        :return: Text of the message that triggered the failure.
        """
        return self.message.text


# ---------- Chain Base ----------
class LogHandler(ABC):
    """
    Abstract chain node bound to a single Severity.

    The successor is fixed at construction and owned exclusively by this node:
    closing a handler closes the rest of the chain behind it.

    :param next_handler: Optional successor in the chain.
    """

    severity: ClassVar[Severity]

    def __init__(self, next_handler: Optional[LogHandler] = None) -> None:
        self._next = next_handler

    @property
    def next(self) -> Optional[LogHandler]:
        """
        :return: Successor handler, or None at the tail of the chain.
        """
        return self._next

    def accepts(self, message: LogMessage) -> bool:
        """
        :param message: Incoming message.
        :return: True when the message severity matches this handler.
        """
        return message.severity is self.severity

    @abstractmethod
    def handle(self, message: LogMessage) -> None:
        """
        Performs the side effect for an accepted message.

        :param message: Message already known to match this handler.
        :raises ChainError: When acceptance itself is a failure signal.
        """
        raise NotImplementedError

    def dispatch(self, message: LogMessage) -> DispatchReceipt:
        """
        Routes the message to the first handler that accepts it.

        :param message: Message to route.
        :return: Receipt naming the accepting severity and the hop count.
        :raises TerminalSeverity: If a fatal/unknown handler accepted it.
        :raises NoHandlerFound: If no handler in the chain accepted it.
        """
        return self._dispatch(message, hops=0)

    def _dispatch(self, message: LogMessage, hops: int) -> DispatchReceipt:
        if self.accepts(message):
            logger.info("%s accepted after %d hop(s)", type(self).__name__, hops)
            self.handle(message)
            return DispatchReceipt(self.severity, hops)
        return self._delegate(message, hops)

    def _delegate(self, message: LogMessage, hops: int) -> DispatchReceipt:
        if self._next is None:
            raise NoHandlerFound(message, visited=hops + 1)
        logger.debug(
            "%s passes %s message to %s",
            type(self).__name__, message.severity.name, type(self._next).__name__,
        )
        return self._next._dispatch(message, hops + 1)

    def close(self) -> None:
        """
        Releases resources held by this handler and every successor.

        Every node is released even if an earlier one fails; the first
        failure is raised once the whole chain has been walked.

        :raises ResourceUnavailable: If a resource could not be released cleanly.
        """
        first_error: Optional[ChainError] = None
        node: Optional[LogHandler] = self
        while node is not None:
            try:
                node._release()
            except ChainError as exc:
                logger.error("Failed to release %s: %s", type(node).__name__, exc)
                if first_error is None:
                    first_error = exc
            node = node._next
        if first_error is not None:
            raise first_error

    def _release(self) -> None:
        """Hook for handlers owning resources; default is a no-op."""

    def __enter__(self) -> LogHandler:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# ---------- Concrete Handlers ----------
class WarningHandler(LogHandler):
    """
    Prints warnings to standard output.

    :param next_handler: Optional successor in the chain.
    :param stream: Output stream; None means the current ``sys.stdout``.
    """

    severity = Severity.WARNING

    def __init__(self, next_handler: Optional[LogHandler] = None,
                 stream: Optional[TextIO] = None) -> None:
        super().__init__(next_handler)
        self._stream = stream

    def handle(self, message: LogMessage) -> None:
        print(f"Warning: {message.text}", file=self._stream)


class ErrorHandler(LogHandler):
    """
    Appends errors to a log file held open for the handler's lifetime.

    The file is opened in append mode so earlier runs are preserved. Each line
    is flushed as it is written.

    :param next_handler: Optional successor in the chain.
    :param path: Log file location.
    :raises ResourceUnavailable: If the file cannot be opened for appending.
    """

    severity = Severity.ERROR

    def __init__(self, next_handler: Optional[LogHandler] = None,
                 path: PathLike = DEFAULT_ERROR_LOG) -> None:
        super().__init__(next_handler)
        self._path = Path(path)
        try:
            self._file: Optional[TextIO] = self._path.open("a", encoding="utf-8")
        except OSError as exc:
            # the successor is already owned by this handler
            if next_handler is not None:
                next_handler.close()
            raise ResourceUnavailable(
                f"Error: Could not open error log file: {self._path}", self._path
            ) from exc
        logger.debug("Opened error log %s", self._path)

    @property
    def path(self) -> Path:
        """
        :return: Location of the error log.
        """
        return self._path

    @property
    def closed(self) -> bool:
        """
        :return: True once the log file has been released.
        """
        return self._file is None

    def handle(self, message: LogMessage) -> None:
        if self._file is None:
            raise ResourceUnavailable(f"Error: error log is closed: {self._path}", self._path)
        try:
            self._file.write(f"Error: {message.text}\n")
            self._file.flush()
        except OSError as exc:
            raise ResourceUnavailable(
                f"Error: Could not write to error log file: {self._path}", self._path
            ) from exc

    def _release(self) -> None:
        if self._file is None:
            return
        try:
            self._file.close()
        except OSError as exc:
            raise ResourceUnavailable(
                f"Error: Could not close error log file: {self._path}", self._path
            ) from exc
        finally:
            self._file = None
        logger.debug("Closed error log %s", self._path)


class FatalHandler(LogHandler):
    """Aborts the dispatch with TerminalSeverity for fatal messages."""

    severity = Severity.FATAL

    def handle(self, message: LogMessage) -> None:
        raise TerminalSeverity("Fatal Error", message)


class UnknownHandler(LogHandler):
    """Aborts the dispatch with TerminalSeverity for unclassified messages."""

    severity = Severity.UNKNOWN

    def handle(self, message: LogMessage) -> None:
        raise TerminalSeverity("Unknown Error", message)


HANDLER_TYPES: Dict[Severity, Type[LogHandler]] = {
    Severity.WARNING: WarningHandler,
    Severity.ERROR: ErrorHandler,
    Severity.FATAL: FatalHandler,
    Severity.UNKNOWN: UnknownHandler,
}


# ---------- Builder ----------
def build_chain(severities: Iterable[Severity],
                error_log_path: PathLike = DEFAULT_ERROR_LOG) -> LogHandler:
    """
    Builds a chain with one handler per severity, in the given order.

    Handlers are created tail first so each one receives its successor at
    construction. If the error handler cannot open its log, it closes the
    handlers already built behind it before the error propagates.

    :param severities: Order of the chain, head first; each at most once.
    :param error_log_path: Log file used when ERROR is part of the chain.
    :return: The head of the chain.
    :raises ValueError: If the order is empty, repeats a severity or names an unknown one.
    :raises ResourceUnavailable: If the error log cannot be opened.
    """
    order: List[Severity] = list(severities)
    if not order:
        raise ValueError("A chain needs at least one handler.")
    for severity in order:
        if severity not in HANDLER_TYPES:
            raise ValueError(f"No handler type for {severity!r}")
    if len(set(order)) != len(order):
        raise ValueError(f"Each severity may appear only once: {[s.name for s in order]}")

    head: Optional[LogHandler] = None
    for severity in reversed(order):
        handler_type = HANDLER_TYPES[severity]
        if handler_type is ErrorHandler:
            head = ErrorHandler(head, path=error_log_path)
        else:
            head = handler_type(head)
    logger.debug("Built chain: %s", " -> ".join(s.name for s in order))
    return head


def build_default_chain(error_log_path: PathLike = DEFAULT_ERROR_LOG) -> LogHandler:
    """
    Builds the canonical chain (Unknown → Warning → Error → Fatal).

    :param error_log_path: Log file for the error handler.
    :return: The head of the chain.
    """
    return build_chain(
        [Severity.UNKNOWN, Severity.WARNING, Severity.ERROR, Severity.FATAL],
        error_log_path=error_log_path,
    )
