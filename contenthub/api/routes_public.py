"""
Public API routes - no authentication required
"""

import os
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse, HTMLResponse
from fastapi.templating import Jinja2Templates
from starlette.datastructures import UploadFile

from contenthub.api.deps import get_blob, get_content_service, get_event_service, get_form_service
from contenthub.core.errors import NotFoundError, ValidationError
from contenthub.schemas import RegistrationRequest
from contenthub.schemas.form import CheckboxField, FileField
from contenthub.services.blob_storage import BlobStore, LocalBlobStore, upload_media
from contenthub.services.content_service import ContentService
from contenthub.services.form_engine import FormService
from contenthub.services.ticketing_service import EventService
from contenthub.utils.responses import success_response
from contenthub.utils.security import enforce_rate_limit

router = APIRouter()

templates = Jinja2Templates(directory=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates"))

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

# -------- Content --------

@router.get("/hero")
async def get_hero(content: ContentService = Depends(get_content_service)):
    return success_response(message="Hero section retrieved", data=content.get_hero())

@router.get("/posts")
async def list_posts(content: ContentService = Depends(get_content_service)):
    """All posts, newest first"""
    return success_response(message="Posts retrieved", data=content.list_posts())

@router.get("/posts/{slug}")
async def get_post(slug: str, content: ContentService = Depends(get_content_service)):
    return success_response(message="Post retrieved", data=content.get_post_by_slug(slug))

# -------- Events --------

@router.get("/events")
async def list_events(events: EventService = Depends(get_event_service)):
    """All events ordered by date"""
    return success_response(message="Events retrieved", data=events.list_events())

@router.get("/events/{event_id}")
async def get_event(event_id: str, events: EventService = Depends(get_event_service)):
    return success_response(message="Event retrieved", data=events.get_event(event_id))

@router.post("/events/{event_id}/register", dependencies=[Depends(enforce_rate_limit)])
async def register_for_event(
    event_id: str,
    payload: RegistrationRequest,
    events: EventService = Depends(get_event_service)
):
    """Register an attendee; a full event with a waitlist queues them instead"""
    attendee = events.register_attendee(event_id, payload)
    message = (
        f"Added to the waitlist at position {attendee.waitlist_position}"
        if attendee.on_waitlist
        else "Registration confirmed"
    )
    return success_response(message=message, data=attendee, status_code=201)

# -------- Forms --------

@router.get("/forms/{slug}")
async def get_form(slug: str, forms: FormService = Depends(get_form_service)):
    return success_response(message="Form retrieved", data=forms.get_form(slug))

@router.post("/forms/{slug}/submit", dependencies=[Depends(enforce_rate_limit)])
async def submit_form(
    slug: str,
    payload: Dict[str, Any],
    forms: FormService = Depends(get_form_service)
):
    """Submit a response; accepts {"data": {...}} or the field values directly"""
    data = payload["data"] if isinstance(payload.get("data"), dict) else payload
    response = forms.submit(slug, data)
    return success_response(message="Form submitted successfully", data=response, status_code=201)

@router.get("/forms/{slug}/view", response_class=HTMLResponse)
async def view_form(
    slug: str,
    request: Request,
    forms: FormService = Depends(get_form_service)
):
    """Server-rendered public form"""
    form = forms.get_form(slug)
    return templates.TemplateResponse(request, "public_form.html", {
        "form": form,
        "values": {},
        "error": None,
    })

@router.post("/forms/{slug}/view", response_class=HTMLResponse, dependencies=[Depends(enforce_rate_limit)])
async def submit_form_view(
    slug: str,
    request: Request,
    forms: FormService = Depends(get_form_service),
    blob: BlobStore = Depends(get_blob)
):
    """Handle a submission of the server-rendered form"""
    form = forms.get_form(slug)
    posted = await request.form()

    values: Dict[str, Any] = {}
    for field in form.form_schema:
        if isinstance(field, CheckboxField):
            values[field.id] = posted.getlist(field.id)
        else:
            values[field.id] = posted.get(field.id)

    try:
        for field in form.form_schema:
            value = values[field.id]
            if isinstance(field, FileField) and isinstance(value, UploadFile):
                if value.filename:
                    uploaded = upload_media(blob, value.filename, await value.read(), value.content_type)
                    values[field.id] = uploaded["url"]
                else:
                    values[field.id] = None
        forms.submit(slug, values)
    except ValidationError as e:
        shown = {k: v for k, v in values.items() if not isinstance(v, UploadFile)}
        return templates.TemplateResponse(request, "public_form.html", {
            "form": form,
            "values": shown,
            "error": e.message,
        }, status_code=422)

    return templates.TemplateResponse(request, "form_submitted.html", {"form": form})

# -------- Local media --------

@router.get("/files/{path:path}")
async def serve_file(
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    blob: BlobStore = Depends(get_blob)
):
    """Serve a locally stored upload behind its signed URL"""
    if not isinstance(blob, LocalBlobStore) or not blob.verify(path, expires, signature):
        raise NotFoundError("File")
    full_path = blob.resolve(path)
    if not os.path.isfile(full_path):
        raise NotFoundError("File")
    return FileResponse(full_path)
