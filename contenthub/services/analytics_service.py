"""
Response analytics and dashboard counters
"""

import math
from datetime import datetime
from typing import Any, List, Optional, Sequence

from contenthub.schemas import (
    Attendee,
    BlogPost,
    DashboardStats,
    Event,
    Form,
    FormAnalytics,
    FormField,
    FormResponse,
)
from contenthub.utils.timeutils import as_utc, utcnow


def _filled(value: Any) -> bool:
    return bool(value)


def aggregate(responses: List[FormResponse], fields: Sequence[FormField]) -> FormAnalytics:
    """Completion statistics for a form's responses.

    Responses are expected newest first, as the repository returns them.
    """
    total = len(responses)
    if total == 0:
        return FormAnalytics(
            total_responses=0,
            average_field_completion=0,
            field_completion_rates={field.label: 0 for field in fields},
            last_response_at=None,
            average_minutes_between_responses=0,
        )

    if fields:
        per_response = [
            sum(1 for value in r.data.values() if _filled(value)) / len(fields)
            for r in responses
        ]
        average_completion = sum(per_response) / total
    else:
        average_completion = 0

    rates = {
        field.label: sum(1 for r in responses if _filled(r.data.get(field.label))) / total * 100
        for field in fields
    }

    gap_minutes = 0
    if total > 1:
        span = as_utc(responses[0].submitted_at) - as_utc(responses[-1].submitted_at)
        # halves round up
        gap_minutes = math.floor(span.total_seconds() / (total * 60) + 0.5)

    return FormAnalytics(
        total_responses=total,
        average_field_completion=average_completion,
        field_completion_rates=rates,
        last_response_at=responses[0].submitted_at,
        average_minutes_between_responses=gap_minutes,
    )


def dashboard_stats(
    posts: List[BlogPost],
    events: List[Event],
    forms: List[Form],
    responses: List[FormResponse],
    attendees: List[Attendee],
    now: Optional[datetime] = None,
) -> DashboardStats:
    now = as_utc(now or utcnow())
    return DashboardStats(
        total_posts=len(posts),
        published_posts=sum(1 for p in posts if p.status == "published"),
        total_events=len(events),
        upcoming_events=sum(1 for e in events if as_utc(e.date_time) >= now),
        total_forms=len(forms),
        total_responses=len(responses),
        total_attendees=len(attendees),
        checked_in_attendees=sum(1 for a in attendees if a.checked_in),
    )
