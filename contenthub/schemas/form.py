"""
Dynamic form schemas.

A form's schema is an ordered list of fields. Each field kind is its own
model, discriminated on ``type``; a kind knows which template renders it and
how to check a submitted value, so neither the renderer nor the validator
switches on the tag.
"""

import uuid
from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, model_validator

from contenthub.core.errors import ValidationError
from contenthub.schemas.common import AliasedModel


def _new_id() -> str:
    return str(uuid.uuid4())


class BaseField(BaseModel):
    id: str = Field(default_factory=_new_id)
    label: str = Field(min_length=1)
    placeholder: Optional[str] = None
    required: bool = False

    template: ClassVar[str] = "fields/text.html"

    def normalize(self, value: Any) -> Any:
        """Bring a raw submitted value into its stored shape"""
        if isinstance(value, str):
            return value.strip()
        return value

    def is_empty(self, value: Any) -> bool:
        return value is None or value == "" or value == []

    def check_value(self, value: Any) -> None:
        """Raise ValidationError for a non-empty value this field rejects"""


class TextField(BaseField):
    type: Literal["text"] = "text"


class TextareaField(BaseField):
    type: Literal["textarea"] = "textarea"
    template: ClassVar[str] = "fields/textarea.html"


class FileField(BaseField):
    """Holds the URL returned by the upload endpoint"""
    type: Literal["file"] = "file"
    template: ClassVar[str] = "fields/file.html"


class EmailField(BaseField):
    type: Literal["email"] = "email"
    template: ClassVar[str] = "fields/email.html"

    def check_value(self, value: Any) -> None:
        try:
            validate_email(str(value), check_deliverability=False)
        except EmailNotValidError:
            raise ValidationError(f"{self.label} must be a valid email address", field=self.label)


class _ChoiceField(BaseField):
    options: List[str] = Field(min_length=1)

    def check_value(self, value: Any) -> None:
        if value not in self.options:
            raise ValidationError(f"{self.label} must be one of the listed options", field=self.label)


class SelectField(_ChoiceField):
    type: Literal["select"] = "select"
    template: ClassVar[str] = "fields/select.html"


class RadioField(_ChoiceField):
    type: Literal["radio"] = "radio"
    template: ClassVar[str] = "fields/radio.html"


class CheckboxField(BaseField):
    type: Literal["checkbox"] = "checkbox"
    options: List[str] = Field(min_length=1)
    template: ClassVar[str] = "fields/checkbox.html"

    def normalize(self, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        if not isinstance(value, (list, tuple)):
            raise ValidationError(f"{self.label} must be a list of options", field=self.label)
        return [str(v) for v in value]

    def check_value(self, value: Any) -> None:
        unknown = [v for v in value if v not in self.options]
        if unknown:
            raise ValidationError(f"{self.label} has an unknown option: {unknown[0]}", field=self.label)


FormField = Annotated[
    Union[TextField, EmailField, TextareaField, SelectField, RadioField, CheckboxField, FileField],
    Field(discriminator="type"),
]


class FormDraft(AliasedModel):
    """Editable form definition, as produced by a template or sent by the builder"""
    title: str = Field(min_length=1)
    description: str = ""
    slug: Optional[str] = None
    form_schema: List[FormField] = Field(default_factory=list, alias="schema")

    @model_validator(mode="after")
    def _unique_field_ids(self):
        seen = set()
        for field in self.form_schema:
            if field.id in seen:
                raise ValueError(f"Duplicate field id: {field.id}")
            seen.add(field.id)
        return self


class FormCreate(FormDraft):
    """Schema for creating a form"""


class Form(FormDraft):
    """Stored form definition"""
    id: str
    slug: str
    created_by: str
    created_at: datetime


class FormResponse(BaseModel):
    """Immutable submitted response, keyed by field label"""
    id: str
    form_id: str
    form_slug: str
    data: Dict[str, Any]
    submitted_at: datetime

    def to_document(self) -> dict:
        return self.model_dump(mode="json")


class FormAnalytics(AliasedModel):
    total_responses: int = Field(alias="totalResponses")
    average_field_completion: float = Field(alias="averageFieldCompletion")
    field_completion_rates: Dict[str, float] = Field(alias="fieldCompletionRates")
    last_response_at: Optional[datetime] = Field(None, alias="lastResponseAt")
    average_minutes_between_responses: int = Field(0, alias="averageMinutesBetweenResponses")
