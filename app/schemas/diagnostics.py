from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime
from app.core.enums import AttemptKind, FormType


class DiagnosticEntry(BaseModel):
    id: str
    timestamp: datetime
    request_id: str
    url: str
    event_type: str
    form_type: FormType
    attempt: AttemptKind
    status: Optional[int] = None
    response_time_ms: Optional[float] = None
    payload_size_bytes: int = 0
    success: bool
    error: Optional[str] = None
    response_text: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)


class DiagnosticStats(BaseModel):
    total: int
    successful: int
    failed: int
    quote_count: int
    final_count: int
    most_recent_time: Optional[datetime] = None


class WebhookHealth(BaseModel):
    total_attempts: int
    successful_attempts: int
    failed_attempts: int
    consecutive_failures: int
    success_rate: float
    average_response_time_ms: float
    last_attempt: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None
    has_issues: bool
