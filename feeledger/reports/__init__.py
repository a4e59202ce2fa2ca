"""Mini README: Reporting read models built on SQL aggregation."""

from .engine import ReportEngine

__all__ = ["ReportEngine"]
