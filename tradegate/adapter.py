"""Uniform trading facade over the active exchange.

Every public operation returns immediately. The work is queued on the
:class:`RequestQueue` and the outcome arrives through ``callback(error, result)``
once the call has been classified:

* success: ``callback(None, result)`` with canonical records,
* retryable: the operation is replayed with the same arguments after the
  retry delay (a new queued task),
* surfaced: ``callback(error, None)`` once,
* fatal: the process terminates.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set
from loguru import logger

from .config import Config
from .core.errors import (
    CallerContractError,
    ExchangeCallError,
    FatalAssetPairError,
    terminate,
)
from .core.queue import RequestQueue, Task
from .core.retry import Classification, ErrorClassifier, RetryContext, RetryPolicy, Verdict
from .core.types import OrderType
from .exchanges import BaseExchange, create_exchange

Callback = Callable[[Optional[BaseException], Any], None]

# Adapter operation -> exchange capability
OPERATIONS = {
    "get_trades": "fetch_trades",
    "get_balance": "fetch_balance",
    "get_order_book": "fetch_order_book",
    "place_order": "submit_order",
    "order_filled": "order_filled",
    "cancel_order": "cancel_order",
}


class ExchangeAdapter:
    """Serializes, classifies and normalizes calls to one exchange."""

    def __init__(self, exchange: BaseExchange,
                 queue: Optional[RequestQueue] = None,
                 retry_policy: Optional[RetryPolicy] = None,
                 classifier: Optional[ErrorClassifier] = None,
                 on_fatal: Callable[[BaseException], Any] = terminate):
        self.exchange = exchange
        self.queue = queue or RequestQueue()
        self.retry_policy = retry_policy or RetryPolicy()
        self.classifier = classifier or ErrorClassifier(exchange.fatal_signatures)
        self.on_fatal = on_fatal
        self._inflight: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> "ExchangeAdapter":
        """Select the exchange once and wire queue spacing and retry settings."""
        return cls(
            create_exchange(config),
            queue=RequestQueue(config.queue.spacing_ms),
            retry_policy=RetryPolicy(
                delay=config.retry.delay_seconds,
                max_attempts=config.retry.max_attempts,
            ),
            **kwargs,
        )

    # Public operations

    def get_trades(self, retry_allowed: bool, callback: Callback) -> None:
        self._start(RetryContext("get_trades", (), retry_allowed), callback)

    def get_balance(self, retry_allowed: bool, callback: Callback) -> None:
        self._start(RetryContext("get_balance", (), retry_allowed), callback)

    def get_order_book(self, retry_allowed: bool, callback: Callback) -> None:
        self._start(RetryContext("get_order_book", (), retry_allowed), callback)

    def place_order(self, order_type: Any, amount: Any, price: Any,
                    retry_allowed: bool, callback: Callback) -> None:
        try:
            OrderType(order_type)
        except ValueError:
            logger.error(f"Invalid order type {order_type!r}!")
            error = CallerContractError(f"Invalid order type: {order_type!r}")
            asyncio.get_running_loop().call_soon(self._deliver, "place_order", callback, error, None)
            return

        self._start(RetryContext("place_order", (order_type, amount, price), retry_allowed), callback)

    def order_filled(self, order_id: str, retry_allowed: bool, callback: Callback) -> None:
        self._start(RetryContext("order_filled", (order_id,), retry_allowed), callback)

    def cancel_order(self, order_id: str, retry_allowed: bool, callback: Callback) -> None:
        self._start(RetryContext("cancel_order", (order_id,), retry_allowed), callback)

    async def request(self, operation: str, *args: Any, retry_allowed: bool = True) -> Any:
        """Await an operation instead of passing a callback."""
        if operation not in OPERATIONS:
            raise CallerContractError(f"Unknown operation: {operation}")

        future = asyncio.get_running_loop().create_future()

        def callback(error: Optional[BaseException], result: Any) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        getattr(self, operation)(*args, retry_allowed, callback)
        return await future

    async def close(self) -> None:
        """Stop the queue, wait for started calls and release the client."""
        self.retry_policy.cancel()
        await self.queue.close()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        await self.exchange.close()

    # Dispatch

    def _start(self, context: RetryContext, callback: Callback) -> None:
        if context.operation == "cancel_order" and self.exchange.checks_fill_before_cancel:
            self._cancel_unless_filled(context, callback)
        else:
            self._enqueue(context, callback)

    def _cancel_unless_filled(self, context: RetryContext, callback: Callback) -> None:
        """Check the fill state first and cancel only an order still open.

        Only the fill check takes a queue slot when ``cancel_order`` is
        called. The cancel itself is queued once the check resolves, so it
        lands behind any call enqueued in the meantime.
        """
        (order_id,) = context.args

        def on_fill_status(error: Optional[BaseException], filled: Any) -> None:
            if error is not None:
                self._deliver("cancel_order", callback, error, None)
            elif filled:
                logger.info(f"Order {order_id} already filled, not cancelling")
                self._deliver("cancel_order", callback, None, False)
            else:
                self._enqueue(context, callback)

        self.order_filled(order_id, True, on_fill_status)

    def _enqueue(self, context: RetryContext, callback: Callback) -> None:
        task = Task(context.operation, lambda: self._spawn(self._attempt(context, callback)))
        self.queue.enqueue(task)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _call_exchange(self, context: RetryContext) -> Awaitable[Any]:
        method = getattr(self.exchange, OPERATIONS[context.operation])
        if context.operation == "place_order":
            order_type, amount, price = context.args
            return method(OrderType(order_type), amount, price)
        return method(*context.args)

    async def _attempt(self, context: RetryContext, callback: Callback) -> None:
        try:
            result = await self._call_exchange(context)
        except Exception as e:
            if not isinstance(e, (ExchangeCallError, FatalAssetPairError)):
                e = self.exchange.wrap_error(context.operation, e)
            outcome = self.classifier.classify(e, context)
        else:
            outcome = Classification.success(result)

        self._resolve(outcome, context, callback)

    def _resolve(self, outcome: Classification, context: RetryContext, callback: Callback) -> None:
        verdict = outcome.verdict
        operation = context.operation

        if verdict is Verdict.SUCCESS:
            self._deliver(operation, callback, None, outcome.result)

        elif verdict is Verdict.FATAL:
            logger.critical(f"{self.exchange.name} returned {outcome.reason} error, exiting!")
            self.on_fatal(outcome.error)

        elif verdict is Verdict.RETRY:
            if self.retry_policy.exhausted(context):
                logger.error(f"{operation} gave up after {context.attempt} attempts")
                logger.error(_excerpt(outcome.error))
                self._deliver(operation, callback, outcome.error, None)
                return

            logger.error(
                f"{operation} Couldn't connect to the API ({outcome.reason}), "
                f"retrying in {self.retry_policy.delay:g} seconds!"
            )
            logger.error(_excerpt(outcome.error))
            self.retry_policy.schedule(context, lambda retry: self._start(retry, callback))

        elif verdict is Verdict.SURFACE:
            logger.error(f"{operation} Couldn't connect to the API.")
            logger.error(_excerpt(outcome.error))
            self._deliver(operation, callback, outcome.error, None)

        else:
            raise ValueError(f"Unhandled verdict: {verdict}")

    def _deliver(self, operation: str, callback: Callback,
                 error: Optional[BaseException], result: Any) -> None:
        try:
            callback(error, result)
        except Exception:
            logger.exception(f"{operation} callback raised")


def _excerpt(error: Optional[BaseException]) -> str:
    signature = getattr(error, "signature", None) or str(error)
    return signature[:99]
