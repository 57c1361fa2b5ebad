"""
Pydantic schemas package
"""

from .common import *
from .content import *
from .auth import *
from .event import *
from .form import *
from .stats import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "AliasedModel",
    "HeroSection",
    "PostCreate",
    "PostUpdate",
    "BlogPost",
    "AuthUser",
    "AuthSession",
    "SignUpRequest",
    "SignInRequest",
    "RefreshRequest",
    "ResetPasswordRequest",
    "UpdateUserRequest",
    "TicketType",
    "CheckInSettings",
    "EventCreate",
    "EventUpdate",
    "Event",
    "Attendee",
    "RegistrationRequest",
    "BulkCheckInRequest",
    "AttendeeStats",
    "FormField",
    "FormDraft",
    "FormCreate",
    "Form",
    "FormResponse",
    "FormAnalytics",
    "DashboardStats",
]
