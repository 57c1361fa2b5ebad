"""
FastAPI dependencies wiring the store, services and the current user
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from contenthub.core.db import get_db
from contenthub.schemas import AuthUser
from contenthub.services.auth_service import AuthProvider, FirebaseAuthProvider, LocalAuthProvider
from contenthub.services.blob_storage import BlobStore, get_blob_store
from contenthub.services.content_service import ContentService
from contenthub.services.document_store import (
    DocumentStore,
    FirestoreDocumentStore,
    SqlDocumentStore,
    use_firestore,
)
from contenthub.services.form_engine import FormService
from contenthub.services.repositories import (
    AttendeeRepo,
    EventRepo,
    FormRepo,
    HeroRepo,
    PostRepo,
    ResponseRepo,
)
from contenthub.services.ticketing_service import EventService
from contenthub.utils.security import SERVICE_ADMIN, get_bearer_token, is_admin_token


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    if use_firestore():
        return FirestoreDocumentStore()
    return SqlDocumentStore(db)


def get_auth_provider(store: DocumentStore = Depends(get_store)) -> AuthProvider:
    if use_firestore():
        return FirebaseAuthProvider()
    return LocalAuthProvider(store)


def get_blob() -> BlobStore:
    return get_blob_store()


def get_content_service(store: DocumentStore = Depends(get_store)) -> ContentService:
    return ContentService(HeroRepo(store), PostRepo(store))


def get_event_service(store: DocumentStore = Depends(get_store)) -> EventService:
    return EventService(EventRepo(store), AttendeeRepo(store))


def get_form_service(store: DocumentStore = Depends(get_store)) -> FormService:
    return FormService(FormRepo(store), ResponseRepo(store))


def get_current_user(
    token: str = Depends(get_bearer_token),
    auth: AuthProvider = Depends(get_auth_provider),
) -> AuthUser:
    """The static admin token, or a session token verified by the auth provider"""
    if is_admin_token(token):
        return SERVICE_ADMIN
    return auth.get_user(token)
