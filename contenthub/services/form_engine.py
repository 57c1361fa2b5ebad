"""
Form engine: slugs, built-in templates, submission validation and persistence
"""

import logging
import re
import uuid
from typing import Any, Dict, List, Mapping

from pydantic import TypeAdapter

from contenthub.core.errors import NotFoundError, ValidationError
from contenthub.schemas import AuthUser, Form, FormCreate, FormDraft, FormField, FormResponse
from contenthub.services.repositories import FormRepo, ResponseRepo
from contenthub.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

_DISALLOWED = re.compile(r"[^a-z0-9 -]+")
_SEPARATORS = re.compile(r"[ -]+")

_fields_adapter = TypeAdapter(List[FormField])


def generate_slug(title: str) -> str:
    """URL-safe slug: lowercase, [a-z0-9] words joined by single hyphens"""
    slug = _DISALLOWED.sub("", title.lower())
    slug = _SEPARATORS.sub("-", slug)
    return slug.strip("-")


# Field lists are copied with fresh ids every time a template is rendered.
FORM_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "contact": {
        "title": "Contact Form",
        "description": "A standard contact form for collecting inquiries",
        "schema": [
            {"type": "text", "label": "Name", "placeholder": "John Doe", "required": True},
            {"type": "email", "label": "Email", "placeholder": "john@example.com", "required": True},
            {"type": "select", "label": "Subject", "required": True,
             "options": ["General Inquiry", "Support", "Partnership", "Other"]},
            {"type": "textarea", "label": "Message", "placeholder": "Your message here...", "required": True},
        ],
    },
    "event": {
        "title": "Event Registration",
        "description": "Collect registrations for your events",
        "schema": [
            {"type": "text", "label": "Full Name", "placeholder": "John Doe", "required": True},
            {"type": "email", "label": "Email", "placeholder": "john@example.com", "required": True},
            {"type": "select", "label": "Ticket Type", "required": True,
             "options": ["Standard", "VIP", "Group"]},
            {"type": "checkbox", "label": "Additional Options", "required": False,
             "options": ["Parking", "Accommodation", "Dietary Requirements"]},
        ],
    },
    "feedback": {
        "title": "Feedback Survey",
        "description": "Collect user feedback and ratings",
        "schema": [
            {"type": "select", "label": "Rating", "required": True,
             "options": ["5 - Excellent", "4 - Good", "3 - Average", "2 - Fair", "1 - Poor"]},
            {"type": "textarea", "label": "What did you like?",
             "placeholder": "Share what you enjoyed...", "required": True},
            {"type": "textarea", "label": "What could be improved?",
             "placeholder": "Share your suggestions...", "required": True},
            {"type": "checkbox", "label": "Would you recommend us?", "required": True,
             "options": ["Yes", "No", "Maybe"]},
        ],
    },
}


def render_template(template_key: str) -> FormDraft:
    """Build a fresh form draft from a built-in template"""
    template = FORM_TEMPLATES.get(template_key)
    if template is None:
        raise NotFoundError("Form template")

    fields = _fields_adapter.validate_python(
        [{**field, "id": str(uuid.uuid4())} for field in template["schema"]]
    )
    return FormDraft(
        title=template["title"],
        description=template["description"],
        slug=generate_slug(template["title"]),
        form_schema=fields,
    )


def validate_submission(form: Form, submitted_data: Mapping[str, Any]) -> Dict[str, Any]:
    """Check a submission against the form schema and re-key it by label.

    Values may arrive keyed by field id (the rendered form) or by label (the
    stored shape). Fails on the first bad field in schema order.
    """
    data: Dict[str, Any] = {}
    for field in form.form_schema:
        raw = submitted_data.get(field.id, submitted_data.get(field.label))
        value = field.normalize(raw)

        if field.is_empty(value):
            if field.required:
                raise ValidationError(f"{field.label} is required", field=field.label)
            continue

        field.check_value(value)
        data[field.label] = value

    return data


class FormService:
    """Form definitions and their responses"""

    def __init__(self, forms: FormRepo, responses: ResponseRepo):
        self.forms = forms
        self.responses = responses

    def list_forms(self) -> List[Form]:
        return self.forms.list_all()

    def get_form(self, slug: str) -> Form:
        form = self.forms.get(slug)
        if not form:
            raise NotFoundError("Form")
        return form

    def create_form(self, payload: FormCreate, user: AuthUser) -> Form:
        slug = generate_slug(payload.slug or payload.title)
        if not slug:
            raise ValidationError("Slug must contain at least one letter or digit", field="slug")
        if self.forms.exists(slug):
            raise ValidationError(f"A form with slug '{slug}' already exists", field="slug")

        form = Form(
            id=str(uuid.uuid4()),
            title=payload.title,
            description=payload.description,
            slug=slug,
            form_schema=payload.form_schema,
            created_by=user.id,
            created_at=utcnow(),
        )
        self.forms.save(form)
        logger.info(f"Form created: {slug} ({len(form.form_schema)} fields)")
        return form

    def delete_form(self, slug: str) -> None:
        """Remove the definition; its responses are retained"""
        self.get_form(slug)
        self.forms.delete(slug)
        logger.info(f"Form deleted: {slug} (responses retained)")

    def submit(self, slug: str, submitted_data: Mapping[str, Any]) -> FormResponse:
        form = self.get_form(slug)
        data = validate_submission(form, submitted_data)

        response = FormResponse(
            id=str(uuid.uuid4()),
            form_id=form.id,
            form_slug=form.slug,
            data=data,
            submitted_at=utcnow(),
        )
        self.responses.save(response)
        return response

    def list_responses(self, slug: str) -> List[FormResponse]:
        return self.responses.list_for_form(slug)

    def all_responses(self) -> List[FormResponse]:
        return self.responses.list_all()
