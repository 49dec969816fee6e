"""Error taxonomy shared by the service (mapped to HTTP) and the client (mapped back)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FieldError:
    path: str
    message: str

    def to_dict(self) -> dict:
        return {"path": self.path, "message": self.message}


class GarageflowError(Exception):
    """Base class for every domain failure."""

    code = "error"
    # Set by the client when an earlier attempt of the same call failed transiently,
    # so the server may already have applied it.
    after_transient = False

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class ValidationError(GarageflowError):
    """Missing or malformed input. Raised before any network call on the client."""

    code = "validation_error"

    def __init__(self, errors: list[FieldError] | FieldError | str, message: str | None = None):
        if isinstance(errors, str):
            errors = [FieldError(path="", message=errors)]
        elif isinstance(errors, FieldError):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(message or "; ".join(
            f"{e.path}: {e.message}" if e.path else e.message for e in self.errors
        ))

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "errors": [e.to_dict() for e in self.errors],
        }


class NotFoundError(GarageflowError):
    code = "not_found"

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id} not found")

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self), "kind": self.kind, "id": self.entity_id}


class ConflictError(GarageflowError):
    """409: the caller acted on stale state. Never retried automatically."""

    code = "conflict"
    reason = "conflict"

    def __init__(self, message: str, reason: str | None = None, details: dict[str, Any] | None = None):
        if reason:
            self.reason = reason
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "reason": self.reason, "message": str(self), **self.details}


class AssignmentConflictError(ConflictError):
    reason = "assignment_overlap"

    def __init__(self, technician_id: str, center_id: str, conflicting_ids: list[str]):
        self.technician_id = technician_id
        self.center_id = center_id
        self.conflicting_ids = list(conflicting_ids)
        super().__init__(
            f"Technician {technician_id} already has an overlapping assignment",
            details={
                "technicianId": technician_id,
                "centerId": center_id,
                "conflictingAssignmentIds": self.conflicting_ids,
            },
        )


class ReorderConflictError(ConflictError):
    reason = "queue_version_mismatch"

    def __init__(self, center_id: str, date: str, expected_version: int | None, current_version: int | None):
        self.center_id = center_id
        self.date = date
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Queue for {center_id} on {date} changed since it was read",
            details={
                "centerId": center_id,
                "date": date,
                "expectedVersion": expected_version,
                "currentVersion": current_version,
            },
        )


class InvalidTransitionError(GarageflowError):
    code = "invalid_transition"

    def __init__(self, kind: str, current: str, target: str, message: str | None = None):
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(message or f"{kind} cannot move from {current} to {target}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "kind": self.kind,
            "current": self.current,
            "target": self.target,
        }


class IncompleteChecklistError(GarageflowError):
    code = "incomplete_checklist"

    def __init__(self, missing_item_ids: list[str]):
        self.missing_item_ids = list(missing_item_ids)
        super().__init__(
            f"{len(self.missing_item_ids)} required checklist item(s) unanswered"
        )

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self), "missingItemIds": self.missing_item_ids}


class TransientServerError(GarageflowError):
    """5xx or transport failure. Retried by create-type client calls, then surfaced."""

    code = "transient"

    def __init__(self, status_code: int | None, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"Server unavailable (status={status_code})")
