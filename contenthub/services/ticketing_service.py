"""
Event ticketing and attendee check-in.

The module-level functions are the registration/check-in rules and work on
plain models; EventService loads and persists around them.
"""

import logging
import math
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from contenthub.core.errors import (
    CheckInWindowError,
    EventCapacityExceeded,
    NotFoundError,
    RegistrationClosedError,
    TicketCapacityExceeded,
    TicketUnavailable,
    ValidationError,
)
from contenthub.schemas import (
    Attendee,
    AttendeeStats,
    AuthUser,
    CheckInSettings,
    Event,
    EventCreate,
    EventUpdate,
    RegistrationRequest,
    TicketType,
)
from contenthub.schemas.event import GENERAL_ADMISSION
from contenthub.services.repositories import AttendeeRepo, EventRepo
from contenthub.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


def confirmed_quantity(attendees: Iterable[Attendee], ticket_type_id: Optional[str] = None) -> int:
    """Seats held by attendees off the waitlist, optionally for one ticket type"""
    return sum(
        a.quantity
        for a in attendees
        if not a.on_waitlist and (ticket_type_id is None or a.ticket_type == ticket_type_id)
    )


def resolve_ticket_type(event: Event, ticket_type_id: Optional[str]) -> TicketType:
    if not event.ticket_types:
        if ticket_type_id in (None, "", GENERAL_ADMISSION.id):
            return GENERAL_ADMISSION
        raise NotFoundError("Ticket type")

    if not ticket_type_id:
        raise ValidationError("Please select a ticket type", field="ticketType")

    ticket = event.find_ticket_type(ticket_type_id)
    if ticket is None:
        ticket = next((t for t in event.ticket_types if t.name == ticket_type_id), None)
    if ticket is None:
        raise NotFoundError("Ticket type")
    return ticket


def register(
    event: Event,
    attendees: List[Attendee],
    request: RegistrationRequest,
    now: Optional[datetime] = None,
) -> Attendee:
    """Create an attendee, confirmed or waitlisted, or raise why not.

    A ticket type that is sold out sends the registrant to the waitlist when
    the event has one, the same as a full event does.
    """
    if not event.registration_open:
        raise RegistrationClosedError("Registration is closed for this event")

    ticket = resolve_ticket_type(event, request.ticket_type)
    if not ticket.available:
        raise TicketUnavailable(f"Ticket type '{ticket.name}' is not available")

    quantity = request.quantity
    on_waitlist = False

    if ticket.capacity is not None and confirmed_quantity(attendees, ticket.id) + quantity > ticket.capacity:
        if not event.enable_waitlist:
            remaining = max(ticket.capacity - confirmed_quantity(attendees, ticket.id), 0)
            raise TicketCapacityExceeded(
                f"Only {remaining} '{ticket.name}' tickets left",
                details={"remaining": remaining},
            )
        on_waitlist = True

    if not on_waitlist and event.capacity is not None and confirmed_quantity(attendees) + quantity > event.capacity:
        if not event.enable_waitlist:
            remaining = max(event.capacity - confirmed_quantity(attendees), 0)
            raise EventCapacityExceeded(
                f"Only {remaining} spots left for this event",
                details={"remaining": remaining},
            )
        on_waitlist = True

    position = None
    if on_waitlist:
        position = 1 + sum(1 for a in attendees if a.on_waitlist)

    return Attendee(
        id=str(uuid.uuid4()),
        event_id=event.id,
        name=request.name.strip(),
        email=str(request.email),
        ticket_type=ticket.id,
        ticket_type_name=ticket.name,
        quantity=quantity,
        registered_at=now or utcnow(),
        checked_in=False,
        on_waitlist=on_waitlist,
        waitlist_position=position,
    )


def check_in_window(event: Event, settings: CheckInSettings) -> Tuple[datetime, Optional[datetime]]:
    """(opens, closes) for check-in; closes is None when check-in never auto-closes"""
    starts = as_utc(event.date_time)
    opens = starts - timedelta(minutes=settings.early_check_in_minutes) if settings.allow_early_check_in else starts
    closes = starts + timedelta(minutes=settings.check_in_close_minutes) if settings.auto_close_check_in else None
    return opens, closes


def _ensure_check_in_open(event: Event, now: datetime) -> None:
    if event.check_in_settings is None:
        return
    opens, closes = check_in_window(event, event.check_in_settings)
    if now < opens:
        raise CheckInWindowError(f"Check-in opens at {opens.isoformat()}")
    if closes is not None and now > closes:
        raise CheckInWindowError("Check-in is closed for this event")


def check_in(event: Event, attendee: Attendee, now: Optional[datetime] = None) -> Attendee:
    """Toggle the attendee's check-in state; calling twice restores it"""
    if attendee.checked_in:
        return attendee.model_copy(update={"checked_in": False})
    _ensure_check_in_open(event, as_utc(now or utcnow()))
    return attendee.model_copy(update={"checked_in": True})


def bulk_check_in(
    event: Event,
    attendees: List[Attendee],
    attendee_ids: Iterable[str],
    now: Optional[datetime] = None,
) -> List[Attendee]:
    """Mark every selected attendee checked in (already checked-in ones stay so)"""
    by_id = {a.id: a for a in attendees}
    selected = []
    for attendee_id in dict.fromkeys(attendee_ids):
        if attendee_id not in by_id:
            raise NotFoundError("Attendee")
        selected.append(by_id[attendee_id])

    pending = [a for a in selected if not a.checked_in]
    if pending:
        _ensure_check_in_open(event, as_utc(now or utcnow()))
    return [a.model_copy(update={"checked_in": True}) for a in pending]


def cancel_registration(
    event: Event,
    attendees: List[Attendee],
    attendee_id: str,
) -> Tuple[List[Attendee], List[Attendee]]:
    """Drop an attendee; returns (remaining attendees, waitlisters changed by promotion)"""
    remaining = [a for a in attendees if a.id != attendee_id]
    if len(remaining) == len(attendees):
        raise NotFoundError("Attendee")
    return remaining, promote_waitlist(event, remaining)


def toggle_registration(event: Event) -> Event:
    return event.model_copy(update={"registration_open": not event.registration_open})


def _fits(event: Event, attendee: Attendee, event_total: int, by_ticket: Dict[str, int]) -> bool:
    ticket = event.find_ticket_type(attendee.ticket_type)
    if ticket is not None:
        if not ticket.available:
            return False
        if ticket.capacity is not None and by_ticket[ticket.id] + attendee.quantity > ticket.capacity:
            return False
    if event.capacity is not None and event_total + attendee.quantity > event.capacity:
        return False
    return True


def promote_waitlist(event: Event, attendees: List[Attendee]) -> List[Attendee]:
    """Admit waitlisted attendees that now fit, in waitlist order.

    Promotion stops at the first entry that still does not fit, so nobody
    overtakes an earlier registrant. Returns only the attendees that changed:
    promoted ones and those whose position was renumbered.
    """
    event_total = confirmed_quantity(attendees)
    by_ticket: Dict[str, int] = defaultdict(int)
    for a in attendees:
        if not a.on_waitlist:
            by_ticket[a.ticket_type] += a.quantity

    waiting = sorted(
        (a for a in attendees if a.on_waitlist),
        key=lambda a: (a.waitlist_position or math.inf, as_utc(a.registered_at)),
    )

    changed: List[Attendee] = []
    still_waiting: List[Attendee] = []
    for attendee in waiting:
        if not still_waiting and _fits(event, attendee, event_total, by_ticket):
            changed.append(attendee.model_copy(update={"on_waitlist": False, "waitlist_position": None}))
            event_total += attendee.quantity
            by_ticket[attendee.ticket_type] += attendee.quantity
        else:
            still_waiting.append(attendee)

    for position, attendee in enumerate(still_waiting, start=1):
        if attendee.waitlist_position != position:
            changed.append(attendee.model_copy(update={"waitlist_position": position}))

    return changed


def compute_stats(attendees: List[Attendee]) -> AttendeeStats:
    by_ticket_type: Dict[str, int] = {}
    for a in attendees:
        by_ticket_type[a.ticket_type] = by_ticket_type.get(a.ticket_type, 0) + a.quantity

    return AttendeeStats(
        total=len(attendees),
        checked_in=sum(1 for a in attendees if a.checked_in),
        waitlist=sum(1 for a in attendees if a.on_waitlist),
        by_ticket_type=by_ticket_type,
    )


def filter_attendees(attendees: List[Attendee], search: Optional[str]) -> List[Attendee]:
    """Case-insensitive match on name, email or ticket type"""
    if not search:
        return attendees
    needle = search.lower()
    return [
        a for a in attendees
        if needle in a.name.lower()
        or needle in a.email.lower()
        or needle in a.ticket_type.lower()
        or needle in a.ticket_type_name.lower()
    ]


class EventService:
    """Event CRUD plus registration and attendance"""

    def __init__(self, events: EventRepo, attendees: AttendeeRepo):
        self.events = events
        self.attendees = attendees

    def get_event(self, event_id: str) -> Event:
        event = self.events.get(event_id)
        if not event:
            raise NotFoundError("Event")
        return event

    def list_events(self) -> List[Event]:
        return self.events.list_all()

    def create_event(self, payload: EventCreate, user: AuthUser) -> Event:
        now = utcnow()
        event = Event(
            **payload.model_dump(),
            id=str(uuid.uuid4()),
            created_by=user.id,
            created_at=now,
            updated_at=now,
        )
        self.events.save(event)
        logger.info(f"Event created: {event.id} ({event.title})")
        return event

    def update_event(self, event_id: str, payload: EventUpdate) -> Event:
        """Merge a partial update, then admit any waitlisters the change makes room for"""
        existing = self.get_event(event_id)
        merged = {
            **existing.to_document(),
            **payload.model_dump(mode="json", by_alias=True, exclude_unset=True),
            "updated_at": utcnow().isoformat(),
        }
        try:
            event = Event.model_validate(merged)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ValidationError(f"Invalid event update: {first['msg']}", field=field) from e
        self.events.save(event)
        self._promote(event)
        return event

    def delete_event(self, event_id: str) -> None:
        """Delete an event together with all of its attendees"""
        self.get_event(event_id)
        attendees = self.attendees.list_for_event(event_id)
        for attendee in attendees:
            self.attendees.delete(event_id, attendee.id)
        self.events.delete(event_id)
        logger.info(f"Event deleted: {event_id} ({len(attendees)} attendees removed)")

    def list_attendees(self, event_id: str, search: Optional[str] = None) -> List[Attendee]:
        self.get_event(event_id)
        return filter_attendees(self.attendees.list_for_event(event_id), search)

    def select_attendees(self, event_id: str, attendee_ids: Optional[List[str]] = None) -> List[Attendee]:
        """Attendees in registration order, restricted to attendee_ids when given"""
        attendees = self.list_attendees(event_id)
        if not attendee_ids:
            return attendees
        wanted = set(attendee_ids)
        return [a for a in attendees if a.id in wanted]

    def all_attendees(self) -> List[Attendee]:
        return self.attendees.list_all()

    def get_attendee(self, event_id: str, attendee_id: str) -> Attendee:
        attendee = next((a for a in self.list_attendees(event_id) if a.id == attendee_id), None)
        if attendee is None:
            raise NotFoundError("Attendee")
        return attendee

    def register_attendee(self, event_id: str, request: RegistrationRequest) -> Attendee:
        event = self.get_event(event_id)
        # TODO: no conditional write on the store, concurrent registrations can oversell
        attendee = register(event, self.attendees.list_for_event(event_id), request)
        self.attendees.save(attendee)
        if attendee.on_waitlist:
            logger.info(f"Attendee {attendee.id} waitlisted for event {event_id} at position {attendee.waitlist_position}")
        else:
            logger.info(f"Attendee {attendee.id} registered for event {event_id} ({attendee.quantity} x {attendee.ticket_type_name})")
        return attendee

    def toggle_check_in(self, event_id: str, attendee_id: str) -> Attendee:
        event = self.get_event(event_id)
        attendee = check_in(event, self.get_attendee(event_id, attendee_id))
        self.attendees.save(attendee)
        return attendee

    def bulk_check_in(self, event_id: str, attendee_ids: List[str]) -> List[Attendee]:
        event = self.get_event(event_id)
        updated = bulk_check_in(event, self.attendees.list_for_event(event_id), attendee_ids)
        self.attendees.save_all(updated)
        logger.info(f"Bulk check-in for event {event_id}: {len(updated)} attendees")
        return updated

    def cancel_registration(self, event_id: str, attendee_id: str) -> List[Attendee]:
        """Remove an attendee and return the waitlisters promoted into the freed seats"""
        event = self.get_event(event_id)
        _, changed = cancel_registration(event, self.attendees.list_for_event(event_id), attendee_id)
        self.attendees.delete(event_id, attendee_id)
        self.attendees.save_all(changed)
        promoted = [a for a in changed if not a.on_waitlist]
        logger.info(f"Attendee {attendee_id} cancelled for event {event_id}, {len(promoted)} promoted")
        return promoted

    def toggle_registration(self, event_id: str) -> Event:
        event = toggle_registration(self.get_event(event_id))
        event = event.model_copy(update={"updated_at": utcnow()})
        self.events.save(event)
        logger.info(f"Registration for event {event_id} {'opened' if event.registration_open else 'closed'}")
        return event

    def get_stats(self, event_id: str) -> AttendeeStats:
        return compute_stats(self.list_attendees(event_id))

    def get_check_in_settings(self, event_id: str) -> CheckInSettings:
        return self.get_event(event_id).check_in_settings or CheckInSettings()

    def update_check_in_settings(self, event_id: str, settings: CheckInSettings) -> CheckInSettings:
        event = self.get_event(event_id).model_copy(
            update={"check_in_settings": settings, "updated_at": utcnow()}
        )
        self.events.save(event)
        return settings

    def _promote(self, event: Event) -> List[Attendee]:
        changed = promote_waitlist(event, self.attendees.list_for_event(event.id))
        self.attendees.save_all(changed)
        promoted = [a for a in changed if not a.on_waitlist]
        if promoted:
            logger.info(f"Promoted {len(promoted)} waitlisted attendees for event {event.id}")
        return promoted
