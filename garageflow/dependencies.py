"""FastAPI dependency providers."""

from __future__ import annotations

from garageflow.db.engine import get_db

__all__ = ["get_db"]
