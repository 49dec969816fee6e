"""Garageflow: scheduling and workflow orchestration for multi-center vehicle service."""

__version__ = "0.3.0"
