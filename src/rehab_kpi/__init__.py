"""KPI scoring engine for occupational rehabilitation work readiness."""

__version__ = "0.1.0"
