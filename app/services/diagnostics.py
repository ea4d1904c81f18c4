"""In-memory record of recent webhook delivery attempts.

The buffer keeps the most recent ``capacity`` attempts and evicts the oldest
first. Cumulative counters are kept separately so that success rates still
cover attempts that have already been evicted. Nothing here is persisted.
"""
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from app.core.enums import FormType
from app.schemas.diagnostics import DiagnosticEntry, DiagnosticStats, WebhookHealth


class DiagnosticsBuffer:

    def __init__(self, capacity: int = 20):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[DiagnosticEntry] = deque(maxlen=capacity)
        self.total_attempts = 0
        self.successful_attempts = 0
        self.failed_attempts = 0
        self.consecutive_failures = 0
        self.total_response_time_ms = 0.0
        self.last_attempt: Optional[datetime] = None
        self.last_success: Optional[datetime] = None
        self.last_failure: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, entry: DiagnosticEntry) -> DiagnosticEntry:
        self._entries.append(entry)
        self.total_attempts += 1
        self.total_response_time_ms += entry.response_time_ms or 0.0
        self.last_attempt = entry.timestamp
        if entry.success:
            self.successful_attempts += 1
            self.consecutive_failures = 0
            self.last_success = entry.timestamp
        else:
            self.failed_attempts += 1
            self.consecutive_failures += 1
            self.last_failure = entry.timestamp
        return entry

    def recent(self, limit: Optional[int] = None) -> list[DiagnosticEntry]:
        """Newest first."""
        entries = list(reversed(self._entries))
        return entries[:limit] if limit is not None else entries

    def by_form_type(self, form_type: FormType) -> list[DiagnosticEntry]:
        return [e for e in self.recent() if e.form_type == form_type]

    def get(self, entry_id: str) -> Optional[DiagnosticEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> DiagnosticStats:
        entries = list(self._entries)
        successful = sum(1 for e in entries if e.success)
        return DiagnosticStats(
            total=len(entries),
            successful=successful,
            failed=len(entries) - successful,
            quote_count=sum(1 for e in entries if e.form_type == FormType.QUOTE),
            final_count=sum(1 for e in entries if e.form_type == FormType.FINAL),
            most_recent_time=entries[-1].timestamp if entries else None,
        )

    def health(self) -> WebhookHealth:
        attempts = self.total_attempts
        success_rate = (self.successful_attempts / attempts * 100) if attempts else 0.0
        average = (self.total_response_time_ms / attempts) if attempts else 0.0
        failure_rate = 100.0 - success_rate if attempts else 0.0
        has_issues = self.consecutive_failures >= 3 or (failure_rate > 50.0 and attempts >= 5)
        return WebhookHealth(
            total_attempts=attempts,
            successful_attempts=self.successful_attempts,
            failed_attempts=self.failed_attempts,
            consecutive_failures=self.consecutive_failures,
            success_rate=round(success_rate, 1),
            average_response_time_ms=round(average, 1),
            last_attempt=self.last_attempt,
            last_success=self.last_success,
            last_failure=self.last_failure,
            has_issues=has_issues,
        )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
