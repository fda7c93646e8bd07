"""Error classification and retry scheduling for exchange calls."""

import asyncio
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, FrozenSet, List, Optional, Tuple
from loguru import logger

from .errors import (
    ExchangeCallError,
    FatalAssetPairError,
    TransientNonceError,
)


class Verdict(Enum):
    """What to do with the outcome of one exchange call."""
    SUCCESS = "success"
    RETRY = "retry"
    FATAL = "fatal"
    SURFACE = "surface"


@dataclass(frozen=True)
class RetryContext:
    """Everything needed to replay one adapter operation."""
    operation: str
    args: Tuple[Any, ...]
    retry_allowed: bool
    attempt: int = 1
    next_eligible_at: float = 0.0

    def next_attempt(self, delay: float) -> "RetryContext":
        return replace(self, attempt=self.attempt + 1,
                       next_eligible_at=time.monotonic() + delay)


@dataclass(frozen=True)
class Classification:
    """Tagged outcome of a call attempt."""
    verdict: Verdict
    result: Any = None
    error: Optional[BaseException] = None
    reason: str = ""

    @classmethod
    def success(cls, result: Any) -> "Classification":
        return cls(Verdict.SUCCESS, result=result)


class ErrorClassifier:
    """Decides between fatal, retry and surface for a failed call.

    Priority: a fatal signature of the active exchange wins over everything,
    then nonce errors (retried regardless of the caller's choice), then the
    caller's ``retry_allowed`` flag.
    """

    def __init__(self, fatal_signatures: FrozenSet[str] = frozenset()):
        self.fatal_signatures = fatal_signatures

    def classify(self, error: BaseException, context: RetryContext) -> Classification:
        if isinstance(error, FatalAssetPairError):
            return Classification(Verdict.FATAL, error=error, reason="unknown asset pair")

        if isinstance(error, ExchangeCallError) and error.signature in self.fatal_signatures:
            return Classification(
                Verdict.FATAL,
                error=FatalAssetPairError(error.signature),
                reason="unknown asset pair",
            )

        if isinstance(error, TransientNonceError):
            return Classification(Verdict.RETRY, error=error, reason="invalid nonce")

        if context.retry_allowed:
            return Classification(Verdict.RETRY, error=error, reason="retry allowed")

        return Classification(Verdict.SURFACE, error=error, reason="retry not allowed")


@dataclass
class RetryPolicy:
    """Fixed-delay replay of failed operations.

    ``max_attempts`` of None keeps retrying until success or a fatal error.
    """
    delay: float = 15.0
    max_attempts: Optional[int] = None
    scheduled: int = field(default=0, init=False)
    _handles: List[asyncio.TimerHandle] = field(default_factory=list, init=False, repr=False)

    def exhausted(self, context: RetryContext) -> bool:
        return self.max_attempts is not None and context.attempt >= self.max_attempts

    def schedule(self, context: RetryContext,
                 replay: Callable[[RetryContext], None]) -> RetryContext:
        """Call ``replay`` with the next attempt's context after the delay."""
        next_context = context.next_attempt(self.delay)
        loop = asyncio.get_running_loop()
        # Drop handles that already fired
        self._handles = [h for h in self._handles if h.when() > loop.time()]
        self._handles.append(loop.call_later(self.delay, replay, next_context))
        self.scheduled += 1
        logger.debug(
            f"{context.operation} attempt {next_context.attempt} scheduled in {self.delay:g}s"
        )
        return next_context

    @property
    def pending(self) -> int:
        """Replays scheduled but not yet due."""
        loop = asyncio.get_running_loop()
        return sum(1 for h in self._handles if not h.cancelled() and h.when() > loop.time())

    def cancel(self) -> None:
        """Drop every scheduled replay."""
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
