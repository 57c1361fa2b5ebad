"""
Tests for response analytics, dashboard counters and spreadsheet exports
"""

import io
from datetime import datetime, timedelta, timezone

import pandas as pd

from contenthub.schemas import Attendee, BlogPost, Event, Form, FormResponse
from contenthub.services.analytics_service import aggregate, dashboard_stats
from contenthub.services.export_service import ExportService
from contenthub.services.form_engine import render_template, validate_submission

NOW = datetime(2030, 1, 15, 12, 0, tzinfo=timezone.utc)

def contact_form() -> Form:
    draft = render_template("contact")
    return Form(
        id="form-1",
        title=draft.title,
        description=draft.description,
        slug="contact-form",
        form_schema=draft.form_schema,
        created_by="user-1",
        created_at=NOW,
    )

def response(data, minutes_ago=0, response_id="r") -> FormResponse:
    return FormResponse(
        id=f"{response_id}-{minutes_ago}",
        form_id="form-1",
        form_slug="contact-form",
        data=data,
        submitted_at=NOW - timedelta(minutes=minutes_ago),
    )

def attendee(name, email="guest@example.com", checked_in=False, quantity=1) -> Attendee:
    return Attendee(
        id=name.lower(),
        event_id="evt-1",
        name=name,
        email=email,
        ticket_type="general",
        ticket_type_name="General Admission",
        quantity=quantity,
        registered_at=datetime(2030, 1, 1, 9, 30, tzinfo=timezone.utc),
        checked_in=checked_in,
    )

# -------- Analytics --------

def test_aggregate_with_no_responses():
    form = contact_form()
    analytics = aggregate([], form.form_schema)

    assert analytics.total_responses == 0
    assert analytics.average_field_completion == 0
    assert analytics.field_completion_rates == {"Name": 0, "Email": 0, "Subject": 0, "Message": 0}
    assert analytics.last_response_at is None

def test_aggregate_completion_rates():
    form = contact_form()
    responses = [
        response({"Name": "Ada", "Email": "ada@example.com", "Subject": "Support", "Message": "Hi"}, 0),
        response({"Name": "Bob", "Email": "bob@example.com"}, 30),
    ]

    analytics = aggregate(responses, form.form_schema)

    assert analytics.total_responses == 2
    assert analytics.average_field_completion == 0.75
    assert analytics.field_completion_rates["Name"] == 100
    assert analytics.field_completion_rates["Message"] == 50
    assert analytics.last_response_at == NOW
    assert analytics.average_minutes_between_responses == 15

def test_average_gap_rounds_halves_up():
    form = contact_form()
    # two responses one minute apart: 60s / (2 * 60s) = 0.5
    responses = [response({"Name": "Ada"}, 0), response({"Name": "Bob"}, 1)]

    assert aggregate(responses, form.form_schema).average_minutes_between_responses == 1

def test_aggregate_wire_names():
    analytics = aggregate([], contact_form().form_schema)
    document = analytics.to_document()

    assert set(document) == {
        "totalResponses",
        "averageFieldCompletion",
        "fieldCompletionRates",
        "lastResponseAt",
        "averageMinutesBetweenResponses",
    }

def test_dashboard_stats():
    post = BlogPost(
        id="p1", title="Hello", slug="hello", author_id="u1", status="published",
        created_at=NOW, updated_at=NOW,
    )
    draft = post.model_copy(update={"id": "p2", "slug": "draft", "status": "draft"})
    past = Event(id="e1", title="Past", date_time=NOW - timedelta(days=1), created_at=NOW, updated_at=NOW)
    future = Event(id="e2", title="Future", date_time=NOW + timedelta(days=1), created_at=NOW, updated_at=NOW)

    stats = dashboard_stats(
        posts=[post, draft],
        events=[past, future],
        forms=[contact_form()],
        responses=[response({"Name": "Ada"})],
        attendees=[attendee("Ada", checked_in=True), attendee("Bob")],
        now=NOW,
    )

    assert stats.total_posts == 2
    assert stats.published_posts == 1
    assert stats.total_events == 2
    assert stats.upcoming_events == 1
    assert stats.total_forms == 1
    assert stats.total_responses == 1
    assert stats.total_attendees == 2
    assert stats.checked_in_attendees == 1

# -------- Exports --------

def test_contact_submission_csv_export():
    """A contact-form submission exports as one row in field order"""
    form = contact_form()
    fields = {f.label: f for f in form.form_schema}
    data = validate_submission(form, {
        fields["Name"].id: "Ada Lovelace",
        fields["Email"].id: "ada@example.com",
        fields["Subject"].id: "General Inquiry",
        fields["Message"].id: "Hello there",
    })

    csv_text = ExportService.export_responses_csv([response(data)], form.form_schema)
    lines = csv_text.strip().split("\n")

    assert lines[0] == "Submission Date,Name,Email,Subject,Message"
    assert len(lines) == 2
    assert lines[1] == "2030-01-15 12:00:00,Ada Lovelace,ada@example.com,General Inquiry,Hello there"

def test_response_export_joins_checkbox_values():
    draft = render_template("event")
    csv_text = ExportService.export_responses_csv(
        [response({"Full Name": "Ada", "Additional Options": ["Parking", "Accommodation"]})],
        draft.form_schema,
    )

    df = pd.read_csv(io.StringIO(csv_text), keep_default_na=False)
    assert df.loc[0, "Additional Options"] == "Parking, Accommodation"
    assert df.loc[0, "Ticket Type"] == ""

def test_attendee_csv_export():
    csv_text = ExportService.export_attendees_csv([
        attendee("Ada", checked_in=True, quantity=2),
        attendee("Smith, John", email="john@example.com"),
    ])
    lines = csv_text.strip().split("\n")

    assert lines[0] == "Name,Email,Ticket Type,Quantity,Registered At,Checked In"
    assert lines[1] == "Ada,guest@example.com,General Admission,2,2030-01-01T09:30:00+00:00,true"
    assert lines[2].startswith('"Smith, John",john@example.com,')
    assert lines[2].endswith(",false")

def test_attendee_csv_export_empty():
    csv_text = ExportService.export_attendees_csv([])
    assert csv_text.strip() == "Name,Email,Ticket Type,Quantity,Registered At,Checked In"

def test_attendee_xlsx_export():
    content = ExportService.export_attendees_xlsx([attendee("Ada"), attendee("Bob", checked_in=True)])

    df = pd.read_excel(io.BytesIO(content), sheet_name="Attendees")
    assert list(df.columns) == ExportService.ATTENDEE_COLUMNS
    assert list(df["Name"]) == ["Ada", "Bob"]
    assert list(df["Checked In"].astype(str)) == ["false", "true"]
