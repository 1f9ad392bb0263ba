"""Assessment sources: where TrendAggregator fetches raw submissions from."""

from rehab_kpi.source.auth import AuthenticationError, load_service_key
from rehab_kpi.source.base import AssessmentSource, StaticAssessmentSource, load_events
from rehab_kpi.source.supabase import SupabaseAssessmentSource, SupabaseError

__all__ = [
    "AssessmentSource",
    "AuthenticationError",
    "StaticAssessmentSource",
    "SupabaseAssessmentSource",
    "SupabaseError",
    "load_events",
    "load_service_key",
]
