"""Dashboard reports: insight cards and performance trends."""

from rehab_kpi.report.insights import (
    generate_monitoring_insights,
    generate_monthly_insights,
    generate_performance_insights,
)
from rehab_kpi.report.trends import TrendAggregator

__all__ = [
    "TrendAggregator",
    "generate_monitoring_insights",
    "generate_monthly_insights",
    "generate_performance_insights",
]
