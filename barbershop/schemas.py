from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class DispatchOutcome(BaseModel):
    recipient_label: str
    automation_type: str
    status: str = Field(..., pattern="^(sent|failed|skipped|ignored)$")
    error: Optional[str] = None
    detail: Optional[str] = None  # Reason for skipped/ignored


class AutomationRunSummary(BaseModel):
    message: str = "Processing completed"
    sent: int = 0
    skipped: int = 0  # Already handled in a previous/overlapping run
    failed: int = 0
    ignored: int = 0  # Not dispatchable: no phone or unit without WhatsApp
    results: List[DispatchOutcome] = Field(default_factory=list)

    def add_sent(self, label: str, automation_type: str) -> None:
        self.sent += 1
        self.results.append(
            DispatchOutcome(recipient_label=label, automation_type=automation_type, status="sent")
        )

    def add_failed(self, label: str, automation_type: str, error: Optional[str]) -> None:
        self.failed += 1
        self.results.append(
            DispatchOutcome(
                recipient_label=label, automation_type=automation_type, status="failed", error=error
            )
        )

    def add_skipped(self, label: str, automation_type: str, detail: str = "already_sent") -> None:
        self.skipped += 1
        self.results.append(
            DispatchOutcome(
                recipient_label=label, automation_type=automation_type, status="skipped", detail=detail
            )
        )

    def add_ignored(self, label: str, automation_type: str, detail: str) -> None:
        self.ignored += 1
        self.results.append(
            DispatchOutcome(
                recipient_label=label, automation_type=automation_type, status="ignored", detail=detail
            )
        )


class AutomationLogResponse(BaseModel):
    id: int
    company_id: int
    client_id: Optional[int]
    appointment_id: Optional[int]
    automation_type: str
    status: str
    error_message: Optional[str]
    sent_at: datetime

    class Config:
        from_attributes = True


class ErrorResponse(BaseModel):
    error: str
