"""
SLA Value Objects
==================

Immutable value objects and the pure SLA calculator.

SLA clock: both deadlines are measured from the last inbound customer
message. The SLA status is derived from the next-response deadline only.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inbox_routing.config import (
    Priority, SLAStatus,
    DEFAULT_PRIORITY, DEFAULT_TICKET_STATUS,
    VALID_PRIORITIES, TERMINAL_TICKET_STATUSES,
)

SLA_DUE_SOON_MINUTES = 15

# Minutes per priority: response budget, resolution budget
DEFAULT_SLA_TARGETS: Dict[str, Dict[str, int]] = {
    Priority.LOW: {"response": 60, "resolution": 24 * 60},
    Priority.MED: {"response": 30, "resolution": 12 * 60},
    Priority.HIGH: {"response": 15, "resolution": 4 * 60},
    Priority.URGENT: {"response": 5, "resolution": 2 * 60},
}

Timestamp = Union[datetime, str, None]


@dataclass(frozen=True)
class SLATarget:
    """Response and resolution budgets for one priority."""
    response_minutes: int
    resolution_minutes: int


@dataclass(frozen=True)
class SLAComputation:
    """Result of running the calculator for one conversation."""
    next_response_due_at: Optional[datetime]
    resolution_due_at: Optional[datetime]
    sla_status: str

    @classmethod
    def no_clock(cls) -> "SLAComputation":
        return cls(next_response_due_at=None, resolution_due_at=None, sla_status=SLAStatus.OK)

    def to_dict(self) -> dict:
        return {
            "next_response_due_at": self.next_response_due_at,
            "resolution_due_at": self.resolution_due_at,
            "sla_status": self.sla_status,
        }


class SLAPolicy(BaseModel):
    """
    Priority → budget table, optionally loaded from YAML.

    Priorities or budget kinds missing from the file fall back to the
    built-in table.
    """
    model_config = ConfigDict(extra="forbid")

    targets: Dict[str, Dict[str, int]] = Field(
        default_factory=dict,
        validate_default=True,
        description="Budgets in minutes keyed by priority then 'response'/'resolution'"
    )
    due_soon_minutes: int = Field(
        default=SLA_DUE_SOON_MINUTES,
        ge=0,
        description="Remaining minutes at or below which a deadline is due soon"
    )

    @field_validator("targets")
    @classmethod
    def fill_missing_targets(cls, v: Dict[str, Dict[str, int]]) -> Dict[str, Dict[str, int]]:
        merged: Dict[str, Dict[str, int]] = {}
        for priority in VALID_PRIORITIES:
            defaults = DEFAULT_SLA_TARGETS[priority]
            configured = v.get(priority) or {}
            merged[priority] = {
                kind: int(configured.get(kind, minutes))
                for kind, minutes in defaults.items()
            }
            for kind, minutes in merged[priority].items():
                if minutes <= 0:
                    raise ValueError(f"{priority}.{kind} must be a positive number of minutes")
        unknown = set(v) - set(VALID_PRIORITIES)
        if unknown:
            raise ValueError(f"unknown priorities in SLA targets: {sorted(unknown)}")
        return merged

    @classmethod
    def default(cls) -> "SLAPolicy":
        return cls(targets={})

    def target_for(self, priority: Optional[str]) -> SLATarget:
        """Budgets for a priority; unknown or missing priorities use ``low``."""
        row = self.targets.get(priority or DEFAULT_PRIORITY) or self.targets[DEFAULT_PRIORITY]
        return SLATarget(
            response_minutes=row["response"],
            resolution_minutes=row["resolution"],
        )


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Nothing here raises on bad input: an unparsable timestamp means no SLA
    clock is running.
    """

    @staticmethod
    def parse_timestamp(value: Timestamp) -> Optional[datetime]:
        """Coerce a datetime or ISO-8601 string to an aware UTC datetime."""
        if value is None:
            return None
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                return None
        else:
            return None

        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    @staticmethod
    def calculate_deadline(start: datetime, minutes: int) -> Optional[datetime]:
        try:
            return start + timedelta(minutes=minutes)
        except OverflowError:
            return None

    @staticmethod
    def calculate_status(
        due_at: datetime,
        now: datetime,
        due_soon_minutes: int = SLA_DUE_SOON_MINUTES
    ) -> str:
        """
        Classify a deadline against ``now``.

        A deadline that has been reached counts as breached.
        """
        if now >= due_at:
            return SLAStatus.BREACHED
        remaining_minutes = (due_at - now).total_seconds() / 60
        if remaining_minutes <= due_soon_minutes:
            return SLAStatus.DUE_SOON
        return SLAStatus.OK

    @staticmethod
    def compute_sla(
        priority: Optional[str],
        ticket_status: Optional[str],
        last_customer_message_at: Timestamp,
        now: Optional[datetime] = None,
        policy: Optional[SLAPolicy] = None,
    ) -> SLAComputation:
        """
        Derive due timestamps and SLA status for a conversation.

        Args:
            priority: Conversation priority (defaults to ``low``)
            ticket_status: Ticket status (defaults to ``open``)
            last_customer_message_at: Start of the SLA clock
            now: Evaluation time (defaults to current UTC time)
            policy: Budget table (defaults to the built-in table)
        """
        status = ticket_status or DEFAULT_TICKET_STATUS
        if status in TERMINAL_TICKET_STATUSES:
            return SLAComputation.no_clock()

        started_at = SLACalculator.parse_timestamp(last_customer_message_at)
        if started_at is None:
            return SLAComputation.no_clock()

        policy = policy or SLAPolicy.default()
        current_time = SLACalculator.parse_timestamp(now) or datetime.now(timezone.utc)
        target = policy.target_for(priority)

        next_response_due_at = SLACalculator.calculate_deadline(started_at, target.response_minutes)
        resolution_due_at = SLACalculator.calculate_deadline(started_at, target.resolution_minutes)
        if next_response_due_at is None:
            return SLAComputation(
                next_response_due_at=None,
                resolution_due_at=resolution_due_at,
                sla_status=SLAStatus.OK,
            )

        return SLAComputation(
            next_response_due_at=next_response_due_at,
            resolution_due_at=resolution_due_at,
            sla_status=SLACalculator.calculate_status(
                next_response_due_at, current_time, policy.due_soon_minutes
            ),
        )

    @staticmethod
    def is_overdue(due_at: Optional[datetime], now: datetime) -> bool:
        return due_at is not None and due_at < now
