"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from garageflow.api.bookings import router as bookings_router
from garageflow.api.technicians import router as technicians_router
from garageflow.api.assignments import router as assignments_router
from garageflow.api.queue import router as queue_router
from garageflow.api.intakes import router as intakes_router
from garageflow.api.work_orders import router as work_orders_router

api_router = APIRouter()
api_router.include_router(bookings_router)
api_router.include_router(technicians_router)
api_router.include_router(assignments_router)
api_router.include_router(queue_router)
api_router.include_router(intakes_router)
api_router.include_router(work_orders_router)
