"""
Dashboard statistics schema
"""

from pydantic import Field

from contenthub.schemas.common import AliasedModel

class DashboardStats(AliasedModel):
    total_posts: int = Field(alias="totalPosts")
    published_posts: int = Field(alias="publishedPosts")
    total_events: int = Field(alias="totalEvents")
    upcoming_events: int = Field(alias="upcomingEvents")
    total_forms: int = Field(alias="totalForms")
    total_responses: int = Field(alias="totalResponses")
    total_attendees: int = Field(alias="totalAttendees")
    checked_in_attendees: int = Field(alias="checkedInAttendees")
