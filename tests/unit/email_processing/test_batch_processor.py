"""
Unit tests for the batch processor.

The per-email processor is a stub whose behavior is chosen per email id,
which lets the tests drive sub-batching, concurrency, callbacks, timeouts
and the count invariant without any analyzer or store.
"""

import asyncio

import pytest

from ideabox.email_processing.batch_processor import BatchProcessor
from ideabox.email_processing.models import BatchOptions, UserContext
from tests.factories import USER_ID, make_email, make_failure, make_success


class StubProcessor:
    """Returns scripted outcomes and records peak concurrency."""

    def __init__(self, behaviors=None, delay=0.01):
        self.behaviors = behaviors or {}
        self.delay = delay
        self.in_flight = 0
        self.peak = 0
        self.calls = []

    async def process(self, email, context, options=None):
        self.calls.append((email.id, options))
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            behavior = self.behaviors.get(email.id, "success")
            if behavior == "success":
                return make_success(email.id, category="work", tokens=10, cost=0.001)
            if behavior == "skip":
                return make_success(email.id, skipped=True)
            if behavior == "fail":
                return make_failure(email.id, error="All analyzers failed", tokens=4, cost=0.0004)
            if behavior == "raise":
                raise RuntimeError("processor exploded")
            if behavior == "hang":
                await asyncio.sleep(10)
        finally:
            self.in_flight -= 1


def emails(count):
    return [make_email(f"e{i}") for i in range(count)]


@pytest.fixture
def context():
    return UserContext(user_id=USER_ID)


def fast_options(**overrides):
    values = dict(batch_size=10, delay_between_batches=0)
    values.update(overrides)
    return BatchOptions(**values)


class TestBatchProcessor:

    @pytest.mark.asyncio
    async def test_counts_add_up(self, context):
        stub = StubProcessor({"e1": "fail", "e2": "skip", "e3": "raise"})

        result = await BatchProcessor(stub).process_batch(emails(6), context, fast_options())

        assert result.total_emails == 6
        assert result.success_count == 3
        assert result.failure_count == 2
        assert result.skipped_count == 1
        assert result.success_count + result.failure_count + result.skipped_count == 6
        assert set(result.results) == {f"e{i}" for i in range(6)}
        assert result.total_tokens_used == 3 * 10 + 4
        assert result.estimated_cost == pytest.approx(0.0034)

    @pytest.mark.asyncio
    async def test_exception_becomes_failure(self, context):
        stub = StubProcessor({"e0": "raise"})

        result = await BatchProcessor(stub).process_batch(emails(2), context, fast_options())

        assert result.errors == [{"email_id": "e0", "error": "processor exploded"}]
        assert result.success_count == 1

    @pytest.mark.asyncio
    async def test_timeout_becomes_failure(self, context):
        stub = StubProcessor({"e0": "hang"})

        result = await BatchProcessor(stub).process_batch(
            emails(2), context, fast_options(item_timeout_seconds=0.05)
        )

        assert result.failure_count == 1
        assert result.results["e0"].error == "Analysis timed out after 0.05s"
        assert result.success_count == 1

    @pytest.mark.asyncio
    async def test_concurrency_bounded_by_batch_size(self, context):
        stub = StubProcessor(delay=0.02)

        await BatchProcessor(stub).process_batch(emails(7), context, fast_options(batch_size=3))

        assert stub.peak == 3
        assert [call[0] for call in stub.calls] == [f"e{i}" for i in range(7)]

    @pytest.mark.asyncio
    async def test_progress_reported_per_sub_batch(self, context):
        progress = []

        await BatchProcessor(StubProcessor()).process_batch(
            emails(5), context, fast_options(batch_size=2, on_progress=lambda done, total: progress.append((done, total)))
        )

        assert progress == [(2, 5), (4, 5), (5, 5)]

    @pytest.mark.asyncio
    async def test_error_callback_per_failure(self, context):
        errors = []
        stub = StubProcessor({"e1": "fail", "e3": "raise"})

        await BatchProcessor(stub).process_batch(
            emails(4), context, fast_options(on_error=lambda email_id, error: errors.append(email_id))
        )

        assert sorted(errors) == ["e1", "e3"]

    @pytest.mark.asyncio
    async def test_max_emails_truncates(self, context):
        stub = StubProcessor()

        result = await BatchProcessor(stub).process_batch(emails(5), context, fast_options(max_emails=2))

        assert result.total_emails == 2
        assert [call[0] for call in stub.calls] == ["e0", "e1"]

    @pytest.mark.asyncio
    async def test_per_email_options_forwarded(self, context):
        stub = StubProcessor()

        await BatchProcessor(stub).process_batch(
            emails(1), context, fast_options(skip_analyzed=False, create_actions=False)
        )

        options = stub.calls[0][1]
        assert options.skip_analyzed is False
        assert options.create_actions is False
        assert options.save_to_database is True

    @pytest.mark.asyncio
    async def test_empty_input(self, context):
        stub = StubProcessor()

        result = await BatchProcessor(stub).process_batch([], context, fast_options())

        assert result.total_emails == 0
        assert result.avg_time_per_email_ms == 0
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_sequential_processing(self, context):
        stub = StubProcessor()
        options = fast_options(batch_size=8)

        result = await BatchProcessor(stub).process_sequentially(emails(3), context, options)

        assert stub.peak == 1
        assert result.success_count == 3
        assert options.batch_size == 8
