"""
Repository layer mapping domain documents onto document store keys.

Every entity has exactly one canonical key; lookups by any other attribute
(post slug, attendee email) are read-only prefix scans.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from contenthub.core.errors import StorageError
from contenthub.schemas import Attendee, BlogPost, Event, Form, FormResponse, HeroSection
from contenthub.services.document_store import DocumentStore
from contenthub.utils.timeutils import as_utc

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _parse(model: Type[M], doc: dict, key: str) -> M:
    try:
        return model.model_validate(doc)
    except PydanticValidationError as e:
        logger.error(f"Malformed {model.__name__} document under {key}: {e}")
        raise StorageError("Stored document is malformed") from e


# -------- Hero repository --------

class HeroRepo:
    KEY = "hero_section"

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self) -> Optional[HeroSection]:
        doc = self.store.get(self.KEY)
        return _parse(HeroSection, doc, self.KEY) if doc else None

    def save(self, hero: HeroSection) -> None:
        self.store.set(self.KEY, hero.model_dump(mode="json"))


# -------- Blog post repository --------

class PostRepo:
    PREFIX = "blog_post_"

    def __init__(self, store: DocumentStore):
        self.store = store

    def key(self, post_id: str) -> str:
        return f"{self.PREFIX}{post_id}"

    def list_all(self) -> List[BlogPost]:
        """All posts, newest first"""
        posts = [_parse(BlogPost, d, self.PREFIX) for d in self.store.scan_by_prefix(self.PREFIX)]
        return sorted(posts, key=lambda p: as_utc(p.created_at), reverse=True)

    def get(self, post_id: str) -> Optional[BlogPost]:
        key = self.key(post_id)
        doc = self.store.get(key)
        return _parse(BlogPost, doc, key) if doc else None

    def find_by_slug(self, slug: str) -> Optional[BlogPost]:
        return next((p for p in self.list_all() if p.slug == slug), None)

    def save(self, post: BlogPost) -> None:
        self.store.set(self.key(post.id), post.model_dump(mode="json"))

    def delete(self, post_id: str) -> None:
        self.store.delete(self.key(post_id))


# -------- Event repository --------

class EventRepo:
    PREFIX = "event_"

    def __init__(self, store: DocumentStore):
        self.store = store

    def key(self, event_id: str) -> str:
        return f"{self.PREFIX}{event_id}"

    def list_all(self) -> List[Event]:
        """All events, soonest first"""
        events = [_parse(Event, d, self.PREFIX) for d in self.store.scan_by_prefix(self.PREFIX)]
        return sorted(events, key=lambda e: as_utc(e.date_time))

    def get(self, event_id: str) -> Optional[Event]:
        key = self.key(event_id)
        doc = self.store.get(key)
        return _parse(Event, doc, key) if doc else None

    def save(self, event: Event) -> None:
        self.store.set(self.key(event.id), event.to_document())

    def delete(self, event_id: str) -> None:
        self.store.delete(self.key(event_id))


# -------- Attendee repository --------

class AttendeeRepo:
    """Attendees are stored per event under ``attendee_{eventId}_{attendeeId}``"""

    PREFIX = "attendee_"

    def __init__(self, store: DocumentStore):
        self.store = store

    def key(self, event_id: str, attendee_id: str) -> str:
        return f"{self.PREFIX}{event_id}_{attendee_id}"

    def list_for_event(self, event_id: str) -> List[Attendee]:
        """Attendees of one event in registration order"""
        prefix = f"{self.PREFIX}{event_id}_"
        attendees = [_parse(Attendee, d, prefix) for d in self.store.scan_by_prefix(prefix)]
        return sorted(attendees, key=lambda a: as_utc(a.registered_at))

    def list_all(self) -> List[Attendee]:
        return [_parse(Attendee, d, self.PREFIX) for d in self.store.scan_by_prefix(self.PREFIX)]

    def save(self, attendee: Attendee) -> None:
        self.store.set(self.key(attendee.event_id, attendee.id), attendee.to_document())

    def save_all(self, attendees: List[Attendee]) -> None:
        for attendee in attendees:
            self.save(attendee)

    def delete(self, event_id: str, attendee_id: str) -> None:
        self.store.delete(self.key(event_id, attendee_id))


# -------- Form repository --------

class FormRepo:
    """Forms are keyed by slug, which is what makes slugs unique"""

    PREFIX = "form_"

    def __init__(self, store: DocumentStore):
        self.store = store

    def key(self, slug: str) -> str:
        return f"{self.PREFIX}{slug}"

    def list_all(self) -> List[Form]:
        """All forms, newest first"""
        forms = [_parse(Form, d, self.PREFIX) for d in self.store.scan_by_prefix(self.PREFIX)]
        return sorted(forms, key=lambda f: as_utc(f.created_at), reverse=True)

    def get(self, slug: str) -> Optional[Form]:
        key = self.key(slug)
        doc = self.store.get(key)
        return _parse(Form, doc, key) if doc else None

    def exists(self, slug: str) -> bool:
        return self.store.get(self.key(slug)) is not None

    def save(self, form: Form) -> None:
        self.store.set(self.key(form.slug), form.to_document())

    def delete(self, slug: str) -> None:
        self.store.delete(self.key(slug))


# -------- Form response repository --------

class ResponseRepo:
    PREFIX = "submission_"

    def __init__(self, store: DocumentStore):
        self.store = store

    def list_all(self) -> List[FormResponse]:
        return [_parse(FormResponse, d, self.PREFIX) for d in self.store.scan_by_prefix(self.PREFIX)]

    def list_for_form(self, slug: str) -> List[FormResponse]:
        """Responses to one form, newest first"""
        responses = [r for r in self.list_all() if r.form_slug == slug]
        return sorted(responses, key=lambda r: as_utc(r.submitted_at), reverse=True)

    def save(self, response: FormResponse) -> None:
        self.store.set(f"{self.PREFIX}{response.id}", response.to_document())
