"""SQLAlchemy ORM models."""

from garageflow.models.base import Base
from garageflow.models.booking import Booking
from garageflow.models.technician import Technician, WorkSchedule
from garageflow.models.assignment import Assignment
from garageflow.models.queue_ticket import QueueTicket, QueueDay
from garageflow.models.intake import ServiceIntake, ChecklistItem, ChecklistResponse
from garageflow.models.work_order import WorkOrder, WorkOrderTask

__all__ = [
    "Base", "Booking", "Technician", "WorkSchedule", "Assignment",
    "QueueTicket", "QueueDay",
    "ServiceIntake", "ChecklistItem", "ChecklistResponse",
    "WorkOrder", "WorkOrderTask",
]
