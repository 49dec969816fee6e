"""Declarative state machines for bookings, assignments, intakes and work orders.

Each entity kind has exactly one transition table. The service validates every
status change against it and the client uses the same tables to gate actions
before a request is sent. Transitions never cascade: callers that need a
follow-up change on another entity perform it explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from garageflow.core.errors import InvalidTransitionError


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_QUEUE = "IN_QUEUE"
    ACTIVE = "ACTIVE"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    REASSIGNED = "REASSIGNED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class AssignmentStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class IntakeStatus(str, Enum):
    CHECKED_IN = "Checked_In"
    INSPECTING = "Inspecting"
    VERIFIED = "Verified"
    FINALIZED = "Finalized"
    CANCELLED = "Cancelled"


class WorkOrderStatus(str, Enum):
    DRAFT = "Draft"
    AWAITING_APPROVAL = "AwaitingApproval"
    APPROVED = "Approved"
    IN_PROGRESS = "InProgress"
    PAUSED = "Paused"
    WAITING_PARTS = "WaitingParts"
    QA = "QA"
    REVISED = "Revised"
    REJECTED = "Rejected"
    COMPLETED = "Completed"


class TaskStatus(str, Enum):
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    DONE = "Done"


def status_value(status: Any) -> str:
    """Plain string form of a status (enum member or raw string)."""
    return status.value if isinstance(status, Enum) else str(status)


@dataclass(frozen=True)
class Workflow:
    kind: str
    table: Mapping[str, frozenset[str]]

    def allowed_targets(self, current: Any) -> frozenset[str]:
        return self.table.get(status_value(current), frozenset())

    def is_terminal(self, status: Any) -> bool:
        return not self.allowed_targets(status)

    def can_transition(self, current: Any, target: Any) -> bool:
        return status_value(target) in self.allowed_targets(current)

    def ensure(self, current: Any, target: Any) -> None:
        if status_value(current) not in self.table:
            raise InvalidTransitionError(
                self.kind, status_value(current), status_value(target),
                message=f"Unknown {self.kind} status {status_value(current)!r}",
            )
        if not self.can_transition(current, target):
            raise InvalidTransitionError(self.kind, status_value(current), status_value(target))

    def transition(self, entity: Any, target: Any) -> Any:
        """Set ``entity.status`` to ``target`` if the table allows it."""
        self.ensure(entity.status, target)
        entity.status = status_value(target)
        return entity


def _table(edges: Mapping[Enum, tuple[Enum, ...]], terminal: tuple[Enum, ...]) -> dict[str, frozenset[str]]:
    table = {src.value: frozenset(t.value for t in targets) for src, targets in edges.items()}
    for status in terminal:
        table[status.value] = frozenset()
    return table


B = BookingStatus
BOOKING = Workflow("Booking", _table({
    B.PENDING: (B.ASSIGNED, B.CANCELLED),
    B.ASSIGNED: (B.IN_QUEUE, B.REASSIGNED, B.CANCELLED),
    # Reached when the last live assignment is cancelled; ready for assignment again.
    B.REASSIGNED: (B.ASSIGNED, B.CANCELLED),
    B.IN_QUEUE: (B.ACTIVE, B.CANCELLED),
    B.ACTIVE: (B.CONFIRMED, B.CANCELLED),
    B.CONFIRMED: (B.IN_PROGRESS, B.CANCELLED),
    B.IN_PROGRESS: (B.COMPLETED, B.CANCELLED),
}, terminal=(B.COMPLETED, B.CANCELLED)))

A = AssignmentStatus
ASSIGNMENT = Workflow("Assignment", _table({
    A.PENDING: (A.ASSIGNED, A.CANCELLED),
    A.ASSIGNED: (A.ACTIVE, A.CANCELLED),
    A.ACTIVE: (A.COMPLETED, A.CANCELLED),
}, terminal=(A.COMPLETED, A.CANCELLED)))

I = IntakeStatus
INTAKE = Workflow("ServiceIntake", _table({
    I.CHECKED_IN: (I.INSPECTING, I.CANCELLED),
    I.INSPECTING: (I.VERIFIED, I.CANCELLED),
    I.VERIFIED: (I.FINALIZED, I.CANCELLED),
}, terminal=(I.FINALIZED, I.CANCELLED)))

W = WorkOrderStatus
WORK_ORDER = Workflow("WorkOrder", _table({
    W.DRAFT: (W.AWAITING_APPROVAL,),
    W.AWAITING_APPROVAL: (W.APPROVED, W.REJECTED),
    W.REJECTED: (W.REVISED,),
    W.REVISED: (W.AWAITING_APPROVAL,),
    W.APPROVED: (W.IN_PROGRESS,),
    W.IN_PROGRESS: (W.PAUSED, W.WAITING_PARTS, W.QA, W.COMPLETED),
    W.PAUSED: (W.IN_PROGRESS,),
    W.WAITING_PARTS: (W.IN_PROGRESS,),
    W.QA: (W.COMPLETED,),
}, terminal=(W.COMPLETED,)))

T = TaskStatus
TASK = Workflow("WorkOrderTask", _table({
    T.NOT_STARTED: (T.IN_PROGRESS,),
    T.IN_PROGRESS: (T.DONE, T.NOT_STARTED),
}, terminal=(T.DONE,)))

del A, B, I, T, W

WORKFLOWS: dict[str, Workflow] = {
    wf.kind: wf for wf in (BOOKING, ASSIGNMENT, INTAKE, WORK_ORDER, TASK)
}

# Assignments in these states hold the technician's time.
LIVE_ASSIGNMENT_STATUSES = frozenset({
    AssignmentStatus.PENDING.value,
    AssignmentStatus.ASSIGNED.value,
    AssignmentStatus.ACTIVE.value,
})

# Work items that may receive a new assignment.
ASSIGNABLE_BOOKING_STATUSES = frozenset({
    BookingStatus.PENDING.value,
    BookingStatus.ASSIGNED.value,
    BookingStatus.REASSIGNED.value,
})


def can_transition(kind: str, current: Any, target: Any) -> bool:
    return WORKFLOWS[kind].can_transition(current, target)


def transition(kind: str, entity: Any, target: Any) -> Any:
    return WORKFLOWS[kind].transition(entity, target)
