"""
Tests for slugs, form templates and submission validation
"""

import random
import re
import string

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from contenthub.core.db import Base
from contenthub.core.errors import NotFoundError, ValidationError
from contenthub.schemas import AuthUser, FormCreate
from contenthub.services.document_store import SqlDocumentStore
from contenthub.services.form_engine import FormService, generate_slug, render_template, validate_submission
from contenthub.services.repositories import FormRepo, ResponseRepo

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_forms.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

EDITOR = AuthUser(id="user-1", email="editor@example.com")

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def form_service(db_session):
    store = SqlDocumentStore(db_session)
    return FormService(FormRepo(store), ResponseRepo(store))

@pytest.fixture
def contact_form(form_service):
    """A form created from the contact template"""
    draft = render_template("contact")
    return form_service.create_form(FormCreate.model_validate(draft.to_document()), EDITOR)

def _by_label(form):
    return {field.label: field for field in form.form_schema}

# -------- Slugs --------

def test_generate_slug_from_title():
    assert generate_slug("My Test Form!") == "my-test-form"
    assert generate_slug("  Hello -- World  ") == "hello-world"
    assert generate_slug("Event 2024: Sign-up") == "event-2024-sign-up"

def test_generate_slug_without_usable_characters():
    assert generate_slug("!!!") == ""
    assert generate_slug("") == ""

def test_generate_slug_is_idempotent_and_url_safe():
    """Random titles always give a slug that normalizes to itself"""
    rng = random.Random(1234)
    alphabet = string.ascii_letters + string.digits + " -_!?.,'é"
    for _ in range(300):
        title = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 30)))
        slug = generate_slug(title)
        assert generate_slug(slug) == slug
        assert re.fullmatch(r"([a-z0-9]+(-[a-z0-9]+)*)?", slug)

# -------- Templates --------

def test_render_contact_template():
    draft = render_template("contact")

    assert draft.title == "Contact Form"
    assert draft.slug == "contact-form"
    assert [f.label for f in draft.form_schema] == ["Name", "Email", "Subject", "Message"]
    assert [f.type for f in draft.form_schema] == ["text", "email", "select", "textarea"]

def test_render_template_gives_fresh_field_ids():
    first = render_template("feedback")
    second = render_template("feedback")

    first_ids = {f.id for f in first.form_schema}
    second_ids = {f.id for f in second.form_schema}
    assert len(first_ids) == len(first.form_schema)
    assert first_ids.isdisjoint(second_ids)

def test_render_unknown_template():
    with pytest.raises(NotFoundError):
        render_template("newsletter")

# -------- Form creation --------

def test_create_form_normalizes_slug(form_service):
    payload = FormCreate(title="Anything", slug="My Test Form!")
    form = form_service.create_form(payload, EDITOR)

    assert form.slug == "my-test-form"
    assert form.created_by == "user-1"
    assert form_service.get_form("my-test-form").id == form.id

def test_create_form_slug_defaults_to_title(form_service):
    form = form_service.create_form(FormCreate(title="Volunteer Sign Up"), EDITOR)
    assert form.slug == "volunteer-sign-up"

def test_create_form_rejects_duplicate_slug(form_service):
    form_service.create_form(FormCreate(title="Survey"), EDITOR)

    with pytest.raises(ValidationError) as exc_info:
        form_service.create_form(FormCreate(title="Other", slug="survey"), EDITOR)
    assert exc_info.value.field == "slug"

def test_create_form_rejects_empty_slug(form_service):
    with pytest.raises(ValidationError):
        form_service.create_form(FormCreate(title="???"), EDITOR)

def test_duplicate_field_ids_are_rejected():
    field = {"id": "same", "type": "text", "label": "A"}
    with pytest.raises(ValueError):
        FormCreate.model_validate({"title": "Bad", "schema": [field, {**field, "label": "B"}]})

def test_choice_fields_need_options():
    with pytest.raises(ValueError):
        FormCreate.model_validate({"title": "Bad", "schema": [{"type": "select", "label": "Pick", "options": []}]})

# -------- Submissions --------

def test_submission_missing_required_field_persists_nothing(form_service, contact_form):
    data = {"Name": "Ada", "Email": "ada@example.com", "Subject": "Support"}

    with pytest.raises(ValidationError) as exc_info:
        form_service.submit(contact_form.slug, data)

    assert exc_info.value.field == "Message"
    assert form_service.list_responses(contact_form.slug) == []

def test_submission_accepts_field_ids_and_stores_labels(form_service, contact_form):
    fields = _by_label(contact_form)
    data = {
        fields["Name"].id: "  Ada Lovelace ",
        fields["Email"].id: "ada@example.com",
        fields["Subject"].id: "Support",
        fields["Message"].id: "Hello",
    }

    response = form_service.submit(contact_form.slug, data)

    assert response.data == {
        "Name": "Ada Lovelace",
        "Email": "ada@example.com",
        "Subject": "Support",
        "Message": "Hello",
    }
    assert response.form_slug == contact_form.slug
    assert len(form_service.list_responses(contact_form.slug)) == 1

def test_submission_rejects_invalid_email(contact_form):
    data = {"Name": "Ada", "Email": "not-an-email", "Subject": "Support", "Message": "Hi"}

    with pytest.raises(ValidationError) as exc_info:
        validate_submission(contact_form, data)
    assert exc_info.value.field == "Email"

def test_submission_rejects_unknown_option(contact_form):
    data = {"Name": "Ada", "Email": "ada@example.com", "Subject": "Sales", "Message": "Hi"}

    with pytest.raises(ValidationError) as exc_info:
        validate_submission(contact_form, data)
    assert exc_info.value.field == "Subject"

def test_submission_checkbox_values(form_service):
    draft = render_template("event")
    form = form_service.create_form(FormCreate.model_validate(draft.to_document()), EDITOR)
    base = {"Full Name": "Ada", "Email": "ada@example.com", "Ticket Type": "VIP"}

    # optional checkbox left empty is skipped
    assert "Additional Options" not in validate_submission(form, base)

    data = validate_submission(form, {**base, "Additional Options": ["Parking", "Accommodation"]})
    assert data["Additional Options"] == ["Parking", "Accommodation"]

    with pytest.raises(ValidationError):
        validate_submission(form, {**base, "Additional Options": ["Parking", "Helicopter"]})

def test_submission_checkbox_rejects_non_list_values(form_service):
    draft = render_template("event")
    form = form_service.create_form(FormCreate.model_validate(draft.to_document()), EDITOR)
    base = {"Full Name": "Ada", "Email": "ada@example.com", "Ticket Type": "VIP"}

    for value in [True, 5, {"Parking": True}]:
        with pytest.raises(ValidationError) as exc_info:
            validate_submission(form, {**base, "Additional Options": value})
        assert exc_info.value.field == "Additional Options"

    data = validate_submission(form, {**base, "Additional Options": ("Parking",)})
    assert data["Additional Options"] == ["Parking"]

def test_submit_to_unknown_form(form_service):
    with pytest.raises(NotFoundError):
        form_service.submit("missing", {})

def test_delete_form_keeps_responses(form_service, contact_form):
    form_service.submit(contact_form.slug, {
        "Name": "Ada", "Email": "ada@example.com", "Subject": "Other", "Message": "Bye",
    })

    form_service.delete_form(contact_form.slug)

    with pytest.raises(NotFoundError):
        form_service.get_form(contact_form.slug)
    assert len(form_service.list_responses(contact_form.slug)) == 1
