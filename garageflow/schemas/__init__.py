"""Pydantic request/response schemas (camelCase on the wire)."""

from garageflow.schemas.base import CamelModel, TransitionRequest, UtcDatetime
from garageflow.schemas.booking import BookingCreate, BookingRead
from garageflow.schemas.technician import (
    WorkScheduleCreate, WorkScheduleRead, TechnicianCreate, TechnicianRead,
    MatchedWindowRead, AvailableTechnicianRead,
)
from garageflow.schemas.assignment import (
    AssignmentCreate, AssignmentRead, CancelAssignmentResponse, RescheduleRequest,
)
from garageflow.schemas.queue import (
    QueueTicketCreate, QueueTicketRead, QueueRead, QueueReorderRequest, EtaUpdate, ConvertRequest,
)
from garageflow.schemas.intake import (
    IntakeCreate, IntakeUpdate, IntakeRead, ChecklistItemCreate, ChecklistItemRead,
    ChecklistResponseIn, SaveChecklistResponsesRequest, ChecklistResponseRead,
    ChecklistCompletionRead,
)
from garageflow.schemas.work_order import (
    TaskCreate, TaskUpdate, TaskRead, WorkOrderCreate, WorkOrderUpdate,
    WorkOrderTransition, WorkOrderRead,
)

__all__ = [
    "CamelModel", "TransitionRequest", "UtcDatetime",
    "BookingCreate", "BookingRead",
    "WorkScheduleCreate", "WorkScheduleRead", "TechnicianCreate", "TechnicianRead",
    "MatchedWindowRead", "AvailableTechnicianRead",
    "AssignmentCreate", "AssignmentRead", "CancelAssignmentResponse", "RescheduleRequest",
    "QueueTicketCreate", "QueueTicketRead", "QueueRead", "QueueReorderRequest",
    "EtaUpdate", "ConvertRequest",
    "IntakeCreate", "IntakeUpdate", "IntakeRead", "ChecklistItemCreate", "ChecklistItemRead",
    "ChecklistResponseIn", "SaveChecklistResponsesRequest", "ChecklistResponseRead",
    "ChecklistCompletionRead",
    "TaskCreate", "TaskUpdate", "TaskRead", "WorkOrderCreate", "WorkOrderUpdate",
    "WorkOrderTransition", "WorkOrderRead",
]
