from datetime import datetime, timedelta, timezone

import pytest

from app.core.enums import AttemptKind, FormType
from app.schemas.diagnostics import DiagnosticEntry
from app.services.diagnostics import DiagnosticsBuffer

T0 = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)


def make_entry(n: int, success: bool = True, form_type: FormType = FormType.QUOTE, ms: float = 100.0):
    return DiagnosticEntry(
        id=f"sub_{n}",
        timestamp=T0 + timedelta(seconds=n),
        request_id=f"req_{n}",
        url="https://hooks.test/lead/",
        event_type="quote_submission" if form_type == FormType.QUOTE else "final_submission",
        form_type=form_type,
        attempt=AttemptKind.INITIAL,
        status=200 if success else 500,
        response_time_ms=ms,
        success=success,
    )


@pytest.mark.unit
class TestDiagnosticsBuffer:

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            DiagnosticsBuffer(0)

    def test_oldest_entries_are_evicted(self):
        buf = DiagnosticsBuffer(capacity=3)
        for n in range(5):
            buf.record(make_entry(n))

        assert len(buf) == 3
        assert [e.id for e in buf.recent()] == ["sub_4", "sub_3", "sub_2"]
        assert buf.get("sub_0") is None
        assert buf.get("sub_3").request_id == "req_3"

    def test_recent_limit(self):
        buf = DiagnosticsBuffer()
        for n in range(5):
            buf.record(make_entry(n))
        assert [e.id for e in buf.recent(2)] == ["sub_4", "sub_3"]

    def test_filter_by_form_type(self):
        buf = DiagnosticsBuffer()
        buf.record(make_entry(1))
        buf.record(make_entry(2, form_type=FormType.FINAL))
        buf.record(make_entry(3))

        assert [e.id for e in buf.by_form_type(FormType.QUOTE)] == ["sub_3", "sub_1"]
        assert [e.id for e in buf.by_form_type(FormType.FINAL)] == ["sub_2"]

    def test_stats_cover_buffered_entries(self):
        buf = DiagnosticsBuffer()
        buf.record(make_entry(1))
        buf.record(make_entry(2, success=False, form_type=FormType.FINAL))

        stats = buf.stats()
        assert stats.total == 2
        assert stats.successful == 1
        assert stats.failed == 1
        assert stats.quote_count == 1
        assert stats.final_count == 1
        assert stats.most_recent_time == T0 + timedelta(seconds=2)

    def test_clear_keeps_cumulative_health(self):
        buf = DiagnosticsBuffer()
        buf.record(make_entry(1))
        buf.clear()

        assert len(buf) == 0
        assert buf.stats().total == 0
        assert buf.health().total_attempts == 1


@pytest.mark.unit
class TestWebhookHealth:

    def test_empty(self):
        health = DiagnosticsBuffer().health()
        assert health.total_attempts == 0
        assert health.success_rate == 0.0
        assert health.has_issues is False

    def test_rates_and_timing(self):
        buf = DiagnosticsBuffer()
        buf.record(make_entry(1, ms=100))
        buf.record(make_entry(2, ms=300))
        buf.record(make_entry(3, success=False, ms=200))
        buf.record(make_entry(4, ms=200))

        health = buf.health()
        assert health.success_rate == 75.0
        assert health.average_response_time_ms == 200.0
        assert health.consecutive_failures == 0
        assert health.last_failure == T0 + timedelta(seconds=3)
        assert health.last_success == T0 + timedelta(seconds=4)
        assert health.has_issues is False

    def test_three_consecutive_failures(self):
        buf = DiagnosticsBuffer()
        buf.record(make_entry(1))
        for n in range(2, 5):
            buf.record(make_entry(n, success=False))

        assert buf.health().has_issues is True

    def test_high_failure_rate_needs_five_attempts(self):
        buf = DiagnosticsBuffer()
        buf.record(make_entry(1, success=False))
        buf.record(make_entry(2))
        buf.record(make_entry(3, success=False))
        assert buf.health().has_issues is False

        buf.record(make_entry(4))
        buf.record(make_entry(5, success=False))
        buf.record(make_entry(6, success=False))
        health = buf.health()
        assert health.consecutive_failures == 2
        assert health.has_issues is True

    def test_counters_outlive_eviction(self):
        buf = DiagnosticsBuffer(capacity=2)
        for n in range(6):
            buf.record(make_entry(n))

        assert buf.stats().total == 2
        assert buf.health().total_attempts == 6
