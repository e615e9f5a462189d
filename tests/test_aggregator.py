"""Tests for the windowed aggregator."""

from telegrep.pipeline import Aggregator, FlushAction, format_digest
from telegrep.pipeline.aggregator import TRUNCATED_LENGTH, TRUNCATION_NOTICE


def offer_many(aggregator: Aggregator, count: int) -> None:
    for i in range(count):
        aggregator.offer(f"event {i}")


class TestTick:
    """Tests for the flush schedule."""

    def test_window_not_elapsed(self, transport):
        agg = Aggregator(transport, started_at=0)
        agg.offer("event")

        result = agg.tick(9.9)

        assert result.action == FlushAction.PENDING
        assert transport.messages == []
        assert agg.count == 1
        assert agg.window.events == ["event"]

    def test_digest_after_window(self, transport):
        agg = Aggregator(transport, started_at=0)
        agg.offer("first")
        agg.offer("second")

        result = agg.tick(10)

        assert result.action == FlushAction.DIGEST
        assert result.event_count == 2
        assert result.delivered is True
        assert transport.messages == [result.message]
        assert result.message == (
            "📊 <b>Events in the last 10 seconds:</b> 2\n"
            "━━━━━━━━━━━━━━━━━━\n\n"
            "first\n\n"
            "second\n\n"
        )

    def test_reset_after_flush(self, transport):
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 3)

        agg.tick(12)

        assert agg.count == 0
        assert agg.window.events == []
        assert agg.window.started_at == 12

    def test_second_tick_in_same_window_is_noop(self, transport):
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 3)
        agg.tick(10)
        agg.offer("late")

        result = agg.tick(15)

        assert result.action == FlushAction.PENDING
        assert len(transport.messages) == 1
        assert agg.count == 1

    def test_empty_window_resets_and_sends_nothing(self, transport):
        agg = Aggregator(transport, started_at=0)

        result = agg.tick(30)

        assert result.action == FlushAction.EMPTY
        assert result.delivered is None
        assert transport.messages == []
        assert agg.window.started_at == 30

    def test_window_start_never_moves_backwards(self, transport):
        agg = Aggregator(transport, started_at=100)
        agg.flush(50)
        assert agg.window.started_at == 100

    def test_count_matches_events(self, transport):
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 7)
        assert agg.count == len(agg.window.events) == 7

    def test_offer_never_flushes(self, transport):
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 500)
        assert transport.messages == []

    def test_flush_bypasses_window(self, transport):
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 3)

        result = agg.flush(1)

        assert result.action == FlushAction.DIGEST
        assert len(transport.messages) == 1
        assert agg.count == 0

    def test_custom_interval(self, transport):
        agg = Aggregator(transport, started_at=0, flush_interval=2)
        agg.offer("event")
        assert agg.tick(1).action == FlushAction.PENDING
        result = agg.tick(2)
        assert result.action == FlushAction.DIGEST
        assert "last 2 seconds" in result.message


class TestOverload:
    """Tests for mass-warning suppression."""

    def test_49_events_send_digest(self, transport):
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 49)

        result = agg.tick(10)

        assert result.action == FlushAction.DIGEST
        assert "event 48" in transport.messages[0]

    def test_50_events_send_warning(self, transport):
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 50)

        result = agg.tick(10)

        assert result.action == FlushAction.MASS_WARNING
        assert len(transport.messages) == 1
        assert "MASS WARNING" in transport.messages[0]
        assert "50 events" in transport.messages[0]
        assert "event 0" not in transport.messages[0]
        assert agg.count == 0

    def test_warning_cooldown(self, transport):
        """One warning per 300 seconds, however many overloaded windows."""
        agg = Aggregator(transport, started_at=0)

        offer_many(agg, 60)
        first = agg.tick(10)
        assert first.action == FlushAction.MASS_WARNING
        assert first.retry_in is None
        assert "60 events" in transport.messages[0]

        offer_many(agg, 60)
        second = agg.tick(260)
        assert second.action == FlushAction.SUPPRESSED
        assert second.event_count == 60
        assert second.retry_in == 50
        assert len(transport.messages) == 1
        assert agg.count == 0

        offer_many(agg, 60)
        third = agg.tick(310)
        assert third.action == FlushAction.MASS_WARNING
        assert len(transport.messages) == 2

    def test_digest_allowed_during_cooldown(self, transport):
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 60)
        agg.tick(10)

        offer_many(agg, 5)
        result = agg.tick(20)

        assert result.action == FlushAction.DIGEST
        assert len(transport.messages) == 2

    def test_failed_warning_does_not_start_cooldown(self, transport):
        transport.result = False
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 60)
        assert agg.tick(10).delivered is False

        transport.result = True
        offer_many(agg, 60)
        result = agg.tick(20)

        assert result.action == FlushAction.MASS_WARNING
        assert result.delivered is True

    def test_custom_threshold(self, transport):
        agg = Aggregator(transport, started_at=0, mass_threshold=3)
        offer_many(agg, 3)
        assert agg.tick(10).action == FlushAction.MASS_WARNING


class TestDelivery:
    """Tests for at-most-once delivery."""

    def test_failed_digest_is_dropped(self, transport):
        transport.result = False
        agg = Aggregator(transport, started_at=0)
        offer_many(agg, 3)

        result = agg.tick(10)

        assert result.action == FlushAction.DIGEST
        assert result.delivered is False
        assert agg.count == 0

        transport.result = True
        assert agg.tick(20).action == FlushAction.EMPTY
        assert len(transport.messages) == 1


class TestFormatDigest:
    """Tests for digest rendering and truncation."""

    def test_exact_limit_not_truncated(self):
        base = len(format_digest([""]))
        message = format_digest(["x" * (3800 - base)])
        assert len(message) == 3800
        assert TRUNCATION_NOTICE not in message

    def test_over_limit_truncated(self):
        base = len(format_digest([""]))
        message = format_digest(["x" * (3801 - base)])
        assert len(message) == TRUNCATED_LENGTH + len(TRUNCATION_NOTICE)
        assert message.endswith("\n\n<i>... [message truncated]</i>")

    def test_large_digest_through_tick(self, transport):
        agg = Aggregator(transport, started_at=0)
        for i in range(20):
            agg.offer(f"{i:02d} " + "y" * 400)

        agg.tick(10)

        message = transport.messages[0]
        assert message.endswith(TRUNCATION_NOTICE)
        assert message.startswith("📊 <b>Events in the last 10 seconds:</b> 20\n")
        assert len(message) == TRUNCATED_LENGTH + len(TRUNCATION_NOTICE)

    def test_insertion_order(self):
        message = format_digest(["b", "a", "c"])
        assert message.index("b\n\n") < message.index("a\n\n") < message.index("c\n\n")
