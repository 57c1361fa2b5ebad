"""
Admin API routes - requires authentication
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response

from contenthub.api.deps import (
    get_blob,
    get_content_service,
    get_current_user,
    get_event_service,
    get_form_service,
)
from contenthub.core.errors import CheckInWindowError
from contenthub.schemas import (
    AuthUser,
    BulkCheckInRequest,
    CheckInSettings,
    EventCreate,
    EventUpdate,
    FormCreate,
    HeroSection,
    PostCreate,
    PostUpdate,
)
from contenthub.services import analytics_service
from contenthub.services.blob_storage import BlobStore, upload_media
from contenthub.services.content_service import ContentService
from contenthub.services.export_service import ExportService
from contenthub.services.form_engine import FormService, render_template
from contenthub.services.qr_service import QRService
from contenthub.services.ticketing_service import EventService
from contenthub.utils.responses import success_response

router = APIRouter(dependencies=[Depends(get_current_user)])

def _csv(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

def _xlsx(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=ExportService.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

# -------- Hero & posts --------

@router.put("/hero")
async def update_hero(
    hero: HeroSection,
    content: ContentService = Depends(get_content_service)
):
    """Replace the hero section"""
    return success_response(message="Hero section updated", data=content.update_hero(hero))

@router.post("/posts")
async def create_post(
    payload: PostCreate,
    user: AuthUser = Depends(get_current_user),
    content: ContentService = Depends(get_content_service)
):
    post = content.create_post(payload, user)
    return success_response(message="Post created successfully", data=post, status_code=201)

@router.put("/posts/{post_id}")
async def update_post(
    post_id: str,
    payload: PostUpdate,
    content: ContentService = Depends(get_content_service)
):
    post = content.update_post(post_id, payload)
    return success_response(message="Post updated successfully", data=post)

@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: str,
    content: ContentService = Depends(get_content_service)
):
    content.delete_post(post_id)
    return success_response(message="Post deleted successfully")

# -------- Events --------

@router.post("/events")
async def create_event(
    payload: EventCreate,
    user: AuthUser = Depends(get_current_user),
    events: EventService = Depends(get_event_service)
):
    """Create a new event"""
    event = events.create_event(payload, user)
    return success_response(message="Event created successfully", data=event, status_code=201)

@router.put("/events/{event_id}")
async def update_event(
    event_id: str,
    payload: EventUpdate,
    events: EventService = Depends(get_event_service)
):
    """Update an event; freed capacity promotes waitlisted attendees"""
    event = events.update_event(event_id, payload)
    return success_response(message="Event updated successfully", data=event)

@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    events: EventService = Depends(get_event_service)
):
    """Delete an event and its attendees"""
    events.delete_event(event_id)
    return success_response(message="Event deleted successfully")

@router.post("/events/{event_id}/registration/toggle")
async def toggle_registration(
    event_id: str,
    events: EventService = Depends(get_event_service)
):
    event = events.toggle_registration(event_id)
    state = "opened" if event.registration_open else "closed"
    return success_response(message=f"Registration {state}", data=event)

@router.get("/events/{event_id}/check-in-settings")
async def get_check_in_settings(
    event_id: str,
    events: EventService = Depends(get_event_service)
):
    return success_response(message="Check-in settings retrieved", data=events.get_check_in_settings(event_id))

@router.put("/events/{event_id}/check-in-settings")
async def update_check_in_settings(
    event_id: str,
    payload: CheckInSettings,
    events: EventService = Depends(get_event_service)
):
    settings = events.update_check_in_settings(event_id, payload)
    return success_response(message="Check-in settings updated", data=settings)

# -------- Attendees --------

@router.get("/events/{event_id}/attendees")
async def list_attendees(
    event_id: str,
    search: Optional[str] = Query(None),
    events: EventService = Depends(get_event_service)
):
    """Search and list attendees for an event"""
    attendees = events.list_attendees(event_id, search)
    return success_response(message="Attendees retrieved successfully", data=attendees)

@router.get("/events/{event_id}/attendees/stats")
async def attendee_stats(
    event_id: str,
    events: EventService = Depends(get_event_service)
):
    return success_response(message="Attendee statistics retrieved", data=events.get_stats(event_id))

@router.get("/events/{event_id}/attendees/export.csv")
async def export_attendees_csv(
    event_id: str,
    ids: Optional[List[str]] = Query(None),
    events: EventService = Depends(get_event_service)
):
    """Export attendees (all, or the selected ids) as CSV"""
    attendees = events.select_attendees(event_id, ids)
    return _csv(ExportService.export_attendees_csv(attendees), f"attendees_{event_id}.csv")

@router.get("/events/{event_id}/attendees/export.xlsx")
async def export_attendees_xlsx(
    event_id: str,
    ids: Optional[List[str]] = Query(None),
    events: EventService = Depends(get_event_service)
):
    attendees = events.select_attendees(event_id, ids)
    return _xlsx(ExportService.export_attendees_xlsx(attendees), f"attendees_{event_id}.xlsx")

@router.post("/events/{event_id}/attendees/check-in")
async def bulk_check_in(
    event_id: str,
    payload: BulkCheckInRequest,
    events: EventService = Depends(get_event_service)
):
    """Check in every selected attendee"""
    updated = events.bulk_check_in(event_id, payload.attendee_ids)
    return success_response(message=f"{len(updated)} attendees checked in", data=updated)

@router.post("/events/{event_id}/attendees/{attendee_id}/check-in")
async def toggle_check_in(
    event_id: str,
    attendee_id: str,
    events: EventService = Depends(get_event_service)
):
    """Toggle an attendee's check-in state"""
    attendee = events.toggle_check_in(event_id, attendee_id)
    state = "checked in" if attendee.checked_in else "checked out"
    return success_response(message=f"{attendee.name} {state}", data=attendee)

@router.delete("/events/{event_id}/attendees/{attendee_id}")
async def cancel_registration(
    event_id: str,
    attendee_id: str,
    events: EventService = Depends(get_event_service)
):
    """Cancel a registration and promote from the waitlist"""
    promoted = events.cancel_registration(event_id, attendee_id)
    return success_response(
        message="Registration cancelled",
        data={"promoted": promoted}
    )

@router.get("/events/{event_id}/attendees/{attendee_id}/qr.png")
async def attendee_qr_code(
    event_id: str,
    attendee_id: str,
    events: EventService = Depends(get_event_service)
):
    """Get the attendee's check-in QR code"""
    settings = events.get_check_in_settings(event_id)
    if not settings.enable_qr_code:
        raise CheckInWindowError("QR check-in is disabled for this event")
    attendee = events.get_attendee(event_id, attendee_id)

    qr_bytes = QRService.generate_check_in_qr(event_id, attendee.id)

    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=checkin_{attendee.id}.png"}
    )

# -------- Forms --------

@router.get("/forms")
async def list_forms(forms: FormService = Depends(get_form_service)):
    """All forms, newest first"""
    return success_response(message="Forms retrieved", data=forms.list_forms())

@router.post("/forms")
async def create_form(
    payload: FormCreate,
    user: AuthUser = Depends(get_current_user),
    forms: FormService = Depends(get_form_service)
):
    form = forms.create_form(payload, user)
    return success_response(message="Form created successfully", data=form, status_code=201)

@router.delete("/forms/{slug}")
async def delete_form(slug: str, forms: FormService = Depends(get_form_service)):
    """Delete a form definition; its responses are kept"""
    forms.delete_form(slug)
    return success_response(message="Form deleted successfully")

@router.get("/form-templates/{template_key}")
async def get_form_template(template_key: str):
    """A fresh draft built from a built-in template"""
    return success_response(message="Form template retrieved", data=render_template(template_key))

@router.get("/forms/{slug}/responses")
@router.get("/forms/{slug}/submissions")
async def list_responses(slug: str, forms: FormService = Depends(get_form_service)):
    """Responses to a form, newest first"""
    return success_response(message="Responses retrieved", data=forms.list_responses(slug))

@router.get("/forms/{slug}/analytics")
async def form_analytics(slug: str, forms: FormService = Depends(get_form_service)):
    form = forms.get_form(slug)
    analytics = analytics_service.aggregate(forms.list_responses(slug), form.form_schema)
    return success_response(message="Form analytics retrieved", data=analytics)

@router.get("/forms/{slug}/responses/export.csv")
async def export_responses_csv(slug: str, forms: FormService = Depends(get_form_service)):
    form = forms.get_form(slug)
    content = ExportService.export_responses_csv(forms.list_responses(slug), form.form_schema)
    return _csv(content, f"{slug}_responses.csv")

@router.get("/forms/{slug}/responses/export.xlsx")
async def export_responses_xlsx(slug: str, forms: FormService = Depends(get_form_service)):
    form = forms.get_form(slug)
    content = ExportService.export_responses_xlsx(forms.list_responses(slug), form.form_schema)
    return _xlsx(content, f"{slug}_responses.xlsx")

# -------- Media & dashboard --------

@router.post("/upload")
async def upload_file(
    file: UploadFile = File(...),
    blob: BlobStore = Depends(get_blob)
):
    """Upload an image or PDF and return its signed URL"""
    uploaded = upload_media(blob, file.filename, await file.read(), file.content_type)
    return success_response(message="File uploaded successfully", data=uploaded, status_code=201)

@router.get("/stats")
async def dashboard_stats(
    content: ContentService = Depends(get_content_service),
    events: EventService = Depends(get_event_service),
    forms: FormService = Depends(get_form_service)
):
    """Counts shown on the dashboard"""
    stats = analytics_service.dashboard_stats(
        posts=content.list_posts(),
        events=events.list_events(),
        forms=forms.list_forms(),
        responses=forms.all_responses(),
        attendees=events.all_attendees(),
    )
    return success_response(message="Dashboard statistics retrieved", data=stats)
