"""Checklist completion tracking and the gates built on it."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Protocol

from garageflow.core.errors import FieldError, IncompleteChecklistError, InvalidTransitionError
from garageflow.core.workflow import INTAKE, IntakeStatus, status_value


class ChecklistItemType(str, Enum):
    BOOL = "Bool"
    NUMBER = "Number"
    TEXT = "Text"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


_VALUE_FIELDS = {
    ChecklistItemType.BOOL.value: "bool_value",
    ChecklistItemType.NUMBER.value: "number_value",
    ChecklistItemType.TEXT.value: "text_value",
}

_WIRE_NAMES = {"bool_value": "boolValue", "number_value": "numberValue", "text_value": "textValue"}


class ItemLike(Protocol):
    id: str
    type: Any
    is_required: bool
    is_active: bool


class ResponseLike(Protocol):
    checklist_item_id: str
    bool_value: bool | None
    number_value: float | None
    text_value: str | None


@dataclass(frozen=True)
class ChecklistCompletion:
    total: int
    completed: int
    required_total: int
    required_completed: int
    missing_required_ids: tuple[str, ...]

    @property
    def is_all_required_completed(self) -> bool:
        return not self.missing_required_ids

    @property
    def ratio(self) -> float:
        """requiredCompleted / requiredTotal; 1.0 when nothing is required."""
        if self.required_total == 0:
            return 1.0
        return self.required_completed / self.required_total

    @property
    def completion_percentage(self) -> int:
        return round(self.completed / self.total * 100) if self.total else 0


def has_value(item: ItemLike, response: ResponseLike | None) -> bool:
    """A response answers an item only if it holds a value of the item's type.

    Bool items count once set, whether true or false. Blank text does not count.
    """
    if response is None:
        return False
    value = getattr(response, _VALUE_FIELDS[status_value(item.type)], None)
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def checklist_completion(items: Iterable[ItemLike], responses: Iterable[ResponseLike]) -> ChecklistCompletion:
    by_item = {r.checklist_item_id: r for r in responses}
    active = [i for i in items if i.is_active]
    answered = [i for i in active if has_value(i, by_item.get(i.id))]
    required = [i for i in active if i.is_required]
    missing = tuple(i.id for i in required if not has_value(i, by_item.get(i.id)))
    return ChecklistCompletion(
        total=len(active),
        completed=len(answered),
        required_total=len(required),
        required_completed=len(required) - len(missing),
        missing_required_ids=missing,
    )


def ensure_can_verify(items: Iterable[ItemLike], responses: Iterable[ResponseLike]) -> ChecklistCompletion:
    completion = checklist_completion(items, responses)
    if not completion.is_all_required_completed:
        raise IncompleteChecklistError(list(completion.missing_required_ids))
    return completion


def ensure_intake_transition(
    current: Any,
    target: Any,
    items: Iterable[ItemLike],
    responses: Iterable[ResponseLike],
) -> None:
    """Table check plus the checklist gate on the move to Verified."""
    INTAKE.ensure(current, target)
    if status_value(target) == IntakeStatus.VERIFIED.value:
        ensure_can_verify(items, responses)


def ensure_work_order_allowed(intake_status: Any) -> None:
    if status_value(intake_status) != IntakeStatus.FINALIZED.value:
        raise InvalidTransitionError(
            "ServiceIntake", status_value(intake_status), "WorkOrder",
            message="A work order can only be created from a Finalized intake",
        )


def responses_mutable(intake_status: Any) -> bool:
    """Responses stay editable until the intake reaches a terminal state."""
    return not INTAKE.is_terminal(intake_status)


def response_errors(item: ItemLike, response: ResponseLike, index: int) -> list[FieldError]:
    """Values recorded in a field other than the one matching the item type."""
    expected = _VALUE_FIELDS[status_value(item.type)]
    errors = []
    for field_name in _VALUE_FIELDS.values():
        if field_name != expected and getattr(response, field_name, None) is not None:
            errors.append(FieldError(
                f"responses[{index}].{_WIRE_NAMES[field_name]}",
                f"item {item.id} is of type {status_value(item.type)}",
            ))
    return errors
