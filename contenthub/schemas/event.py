"""
Event, ticketing and attendee schemas
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, EmailStr, Field, model_validator

from contenthub.schemas.common import AliasedModel


def _new_id() -> str:
    return str(uuid.uuid4())


class TicketType(BaseModel):
    """Named registration category with its own price and optional inventory"""
    id: str = Field(default_factory=_new_id)
    name: str
    price: float = Field(0, ge=0)
    capacity: Optional[int] = Field(None, ge=0)
    available: bool = True
    description: Optional[str] = None


GENERAL_ADMISSION = TicketType(id="general", name="General Admission")


class CheckInSettings(AliasedModel):
    allow_early_check_in: bool = Field(False, alias="allowEarlyCheckIn")
    early_check_in_minutes: int = Field(0, ge=0, alias="earlyCheckInMinutes")
    auto_close_check_in: bool = Field(False, alias="autoCloseCheckIn")
    check_in_close_minutes: int = Field(0, ge=0, alias="checkInCloseMinutes")
    enable_qr_code: bool = Field(False, alias="enableQrCode")


class EventCreate(AliasedModel):
    """Schema for creating an event"""
    title: str = Field(min_length=1)
    description: str = ""
    location: str = ""
    date_time: datetime
    image_url: str = ""
    capacity: Optional[int] = Field(None, ge=0)
    registration_open: bool = Field(True, alias="registrationOpen")
    enable_waitlist: bool = Field(False, alias="enableWaitlist")
    ticket_types: List[TicketType] = Field(default_factory=list, alias="ticketTypes")
    check_in_settings: Optional[CheckInSettings] = Field(None, alias="checkInSettings")

    @model_validator(mode="after")
    def _unique_ticket_ids(self):
        ids = [t.id for t in self.ticket_types]
        if len(ids) != len(set(ids)):
            raise ValueError("Ticket type ids must be unique within an event")
        return self

    def find_ticket_type(self, ticket_type_id: str) -> Optional[TicketType]:
        return next((t for t in self.ticket_types if t.id == ticket_type_id), None)


# capacity and check_in_settings may be cleared with null; these may not
_NOT_NULLABLE = {
    "title", "description", "location", "date_time", "image_url",
    "registration_open", "enable_waitlist", "ticket_types",
}


class EventUpdate(AliasedModel):
    """Partial update; unset fields keep their stored value"""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    date_time: Optional[datetime] = None
    image_url: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    registration_open: Optional[bool] = Field(None, alias="registrationOpen")
    enable_waitlist: Optional[bool] = Field(None, alias="enableWaitlist")
    ticket_types: Optional[List[TicketType]] = Field(None, alias="ticketTypes")
    check_in_settings: Optional[CheckInSettings] = Field(None, alias="checkInSettings")

    @model_validator(mode="after")
    def _reject_null_required(self):
        for name in sorted(self.model_fields_set & _NOT_NULLABLE):
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class Event(EventCreate):
    """Stored event"""
    id: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Attendee(AliasedModel):
    id: str = Field(default_factory=_new_id)
    event_id: str = Field(alias="eventId")
    name: str
    email: str
    ticket_type: str = Field(alias="ticketType")
    ticket_type_name: str = Field(alias="ticketTypeName")
    quantity: int = Field(1, ge=1)
    registered_at: datetime = Field(alias="registeredAt")
    checked_in: bool = Field(False, alias="checkedIn")
    on_waitlist: bool = Field(False, alias="onWaitlist")
    waitlist_position: Optional[int] = Field(None, alias="waitlistPosition")


class RegistrationRequest(AliasedModel):
    """Public registration payload"""
    name: str = Field(min_length=1)
    email: EmailStr
    ticket_type: Optional[str] = Field(None, alias="ticketType")
    quantity: int = Field(1, ge=1)


class BulkCheckInRequest(AliasedModel):
    attendee_ids: List[str] = Field(min_length=1, alias="attendeeIds")


class AttendeeStats(AliasedModel):
    total: int
    checked_in: int = Field(alias="checkedIn")
    waitlist: int
    by_ticket_type: Dict[str, int] = Field(alias="byTicketType")
