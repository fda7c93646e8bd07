"""Test error classification and the retry policy."""

import asyncio
import pytest

from tradegate.core.errors import (
    ExchangeCallError,
    FatalAssetPairError,
    KrakenAPIError,
    TransientNonceError,
    describe_error,
)
from tradegate.core.retry import ErrorClassifier, RetryContext, RetryPolicy, Verdict
from tradegate.exchanges.kraken import UNKNOWN_ASSET_PAIR


def kraken_error(*errors):
    error = KrakenAPIError(list(errors))
    return ExchangeCallError("kraken", "Balance", describe_error(error), cause=error)


class TestDescribeError:
    """Test raw error signatures."""

    def test_kraken_errors_render_as_json_array(self):
        assert describe_error(KrakenAPIError(["EQuery:Unknown asset pair"])) == UNKNOWN_ASSET_PAIR

    def test_plain_exception_uses_message(self):
        assert describe_error(ConnectionError("connection reset")) == "connection reset"

    def test_empty_message_falls_back_to_type(self):
        assert describe_error(TimeoutError()) == "TimeoutError"


class TestErrorClassifier:
    """Test classification priority."""

    def setup_method(self):
        """Set up test fixtures."""
        self.classifier = ErrorClassifier(frozenset({UNKNOWN_ASSET_PAIR}))
        self.retrying = RetryContext("get_balance", (), retry_allowed=True)
        self.not_retrying = RetryContext("get_balance", (), retry_allowed=False)

    @pytest.mark.parametrize("retry_allowed", [True, False])
    def test_unknown_asset_pair_is_fatal(self, retry_allowed):
        context = RetryContext("get_trades", (), retry_allowed=retry_allowed)
        outcome = self.classifier.classify(kraken_error("EQuery:Unknown asset pair"), context)

        assert outcome.verdict is Verdict.FATAL
        assert isinstance(outcome.error, FatalAssetPairError)

    def test_signature_must_match_exactly(self):
        error = kraken_error("EQuery:Unknown asset pair", "EGeneral:Internal error")
        outcome = self.classifier.classify(error, self.not_retrying)
        assert outcome.verdict is Verdict.SURFACE

    def test_fatal_signature_only_for_its_exchange(self):
        classifier = ErrorClassifier()
        outcome = classifier.classify(kraken_error("EQuery:Unknown asset pair"), self.retrying)
        assert outcome.verdict is Verdict.RETRY

    def test_nonce_error_retried_without_permission(self):
        error = TransientNonceError("bitstamp", "balance", "Invalid nonce")
        outcome = self.classifier.classify(error, self.not_retrying)

        assert outcome.verdict is Verdict.RETRY
        assert outcome.reason == "invalid nonce"

    def test_other_error_retried_when_allowed(self):
        outcome = self.classifier.classify(kraken_error("EService:Unavailable"), self.retrying)
        assert outcome.verdict is Verdict.RETRY

    def test_other_error_surfaced_when_not_allowed(self):
        error = kraken_error("EService:Unavailable")
        outcome = self.classifier.classify(error, self.not_retrying)

        assert outcome.verdict is Verdict.SURFACE
        assert outcome.error is error


class TestRetryPolicy:
    """Test retry scheduling."""

    def test_unbounded_by_default(self):
        policy = RetryPolicy()
        context = RetryContext("get_trades", (), True, attempt=1000)
        assert policy.exhausted(context) is False

    def test_exhausted_at_max_attempts(self):
        policy = RetryPolicy(delay=1, max_attempts=3)
        assert policy.exhausted(RetryContext("get_trades", (), True, attempt=2)) is False
        assert policy.exhausted(RetryContext("get_trades", (), True, attempt=3)) is True

    def test_schedule_replays_after_delay_with_same_args(self):
        async def scenario():
            loop = asyncio.get_running_loop()
            policy = RetryPolicy(delay=0.05)
            context = RetryContext("place_order", ("buy", "0.1", "100.0"), False)
            replays = []

            scheduled_at = loop.time()
            returned = policy.schedule(context, lambda ctx: replays.append((loop.time(), ctx)))
            assert policy.pending == 1
            await asyncio.sleep(0.1)
            return scheduled_at, returned, replays

        scheduled_at, returned, replays = asyncio.run(scenario())
        assert len(replays) == 1
        replayed_at, replayed = replays[0]
        assert replayed_at - scheduled_at >= 0.045
        assert replayed == returned
        assert replayed.args == ("buy", "0.1", "100.0")
        assert replayed.retry_allowed is False
        assert replayed.attempt == 2

    def test_cancel_drops_scheduled_replays(self):
        async def scenario():
            policy = RetryPolicy(delay=0.02)
            replays = []
            policy.schedule(RetryContext("get_trades", (), True), replays.append)
            policy.cancel()
            await asyncio.sleep(0.05)
            return replays, policy.scheduled

        replays, scheduled = asyncio.run(scenario())
        assert replays == []
        assert scheduled == 1
