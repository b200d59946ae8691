"""
error types, fetch accounting and logging setup for refgraph.

refgraph degrades rather than retries:
- the seed lookup is the only fatal failure
- a failed bulk group contributes nothing and the build carries on
- callbacks supplied by callers never abort a build
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, TypeVar

logger = logging.getLogger("refgraph")

T = TypeVar('T')


class RefgraphError(Exception):
    """base class for refgraph errors."""


class SourceFetchError(RefgraphError):
    """the seed paper or author could not be fetched. no graph is built."""

    def __init__(self, identifier: str, kind: str = "paper"):
        self.identifier = identifier
        self.kind = kind
        super().__init__(f"Could not fetch source {kind}: {identifier or '<empty>'}")


class BatchFetchError(RefgraphError):
    """one bulk request failed. caught at the group boundary."""


@dataclass
class FetchStats:
    """
    request accounting.
    providers keep lifetime totals, each build counts its own calls via track_calls.
    """
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0

    def record_success(self):
        self.total_calls += 1
        self.successful_calls += 1

    def record_failure(self):
        self.total_calls += 1
        self.failed_calls += 1

    def record(self, ok: bool):
        if ok:
            self.record_success()
        else:
            self.record_failure()

    @property
    def success_rate(self) -> float:
        if self.total_calls == 0:
            return 0.0
        return self.successful_calls / self.total_calls


# calls of the build running in the current async context
_build_calls: ContextVar[Optional[FetchStats]] = ContextVar("build_calls", default=None)


@contextmanager
def track_calls() -> Iterator[FetchStats]:
    """
    count the requests made inside this block, and in tasks it spawns,
    on a fresh FetchStats. concurrent builds each see only their own calls.
    """
    stats = FetchStats()
    token = _build_calls.set(stats)
    try:
        yield stats
    finally:
        _build_calls.reset(token)


def current_build_calls() -> Optional[FetchStats]:
    """FetchStats of the enclosing track_calls block, if any."""
    return _build_calls.get()


def safe_execute(
    func: Callable[[], T],
    default: T = None,
    log_errors: bool = True,
    error_msg: str = ""
) -> T:
    """
    execute function safely, returning default on any error.

    use for non-critical operations where failure is acceptable.
    """
    try:
        return func()
    except KeyboardInterrupt:
        raise
    except Exception as e:
        if log_errors:
            msg = error_msg or f"safe_execute failed: {e}"
            logger.warning(msg)
        return default


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None
):
    """
    setup refgraph logging.
    call once at startup.
    """
    formatter = logging.Formatter(
        "%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)

    logger.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger
