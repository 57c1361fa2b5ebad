"""
Authentication providers.

The API only needs an opaque capability: issue a session, verify a token,
refresh it. FirebaseAuthProvider delegates to Firebase Authentication;
LocalAuthProvider keeps users in the document store for development and tests.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
import jwt
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from contenthub.core.config import settings
from contenthub.core.errors import AuthorizationError, UpstreamError, ValidationError
from contenthub.services.document_store import DocumentStore
from contenthub.services.firebase_client import get_firebase_app
from contenthub.schemas import AuthSession, AuthUser
from contenthub.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class AuthProvider(ABC):
    """Session issuing and token verification"""

    @abstractmethod
    def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthUser:
        ...

    @abstractmethod
    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    @abstractmethod
    def get_user(self, access_token: str) -> AuthUser:
        """Verify an access token and return its user, or raise AuthorizationError"""

    @abstractmethod
    def refresh_session(self, refresh_token: str) -> AuthSession:
        ...

    @abstractmethod
    def sign_out(self, access_token: str) -> None:
        """Invalidate every session of the token's user"""

    @abstractmethod
    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def update_user(
        self,
        access_token: str,
        data: Optional[Dict[str, Any]] = None,
        password: Optional[str] = None,
    ) -> AuthUser:
        ...


# -------- Local provider --------

PBKDF2_ITERATIONS = 260000


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        _, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


class LocalAuthProvider(AuthProvider):
    """Users stored under ``auth_user_{email}``, sessions as HS256 JWTs.

    Each user document carries a token version; tokens embed it and sign-out
    bumps it, which invalidates all outstanding tokens of that user.
    """

    PREFIX = "auth_user_"
    ALGORITHM = "HS256"

    def __init__(self, store: DocumentStore, secret_key: Optional[str] = None):
        self.store = store
        self.secret_key = secret_key or settings.SECRET_KEY

    def _key(self, email: str) -> str:
        return f"{self.PREFIX}{email.strip().lower()}"

    def _load(self, email: str) -> Optional[Dict[str, Any]]:
        return self.store.get(self._key(email))

    @staticmethod
    def _as_user(doc: Dict[str, Any]) -> AuthUser:
        return AuthUser(id=doc["id"], email=doc["email"], user_metadata=doc.get("user_metadata") or {})

    def _encode(self, doc: Dict[str, Any], token_type: str, expires_at: int) -> str:
        payload = {
            "sub": doc["id"],
            "email": doc["email"],
            "type": token_type,
            "ver": doc.get("token_version", 0),
            "iat": int(time.time()),
            "exp": expires_at,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.ALGORITHM)

    def _issue(self, doc: Dict[str, Any]) -> AuthSession:
        now = int(time.time())
        expires_at = now + settings.ACCESS_TOKEN_TTL
        return AuthSession(
            access_token=self._encode(doc, "access", expires_at),
            refresh_token=self._encode(doc, "refresh", now + settings.REFRESH_TOKEN_TTL),
            expires_at=expires_at,
            user=self._as_user(doc),
        )

    def _verify(self, token: str, token_type: str) -> Dict[str, Any]:
        """Decode a token and return the current user document it belongs to"""
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthorizationError("Session expired")
        except jwt.PyJWTError:
            raise AuthorizationError("Invalid token")

        if claims.get("type") != token_type:
            raise AuthorizationError("Invalid token")

        doc = self._load(claims.get("email", ""))
        if not doc or doc["id"] != claims.get("sub") or doc.get("token_version", 0) != claims.get("ver"):
            raise AuthorizationError("Session is no longer valid")
        return doc

    def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthUser:
        email = email.strip().lower()
        if self._load(email):
            raise ValidationError("User already registered", field="email")

        doc = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password_hash": hash_password(password),
            "user_metadata": metadata or {},
            "token_version": 0,
            "created_at": utcnow().isoformat(),
        }
        self.store.set(self._key(email), doc)
        logger.info(f"User signed up: {doc['id']}")
        return self._as_user(doc)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        doc = self._load(email)
        if not doc or not verify_password(password, doc.get("password_hash", "")):
            logger.warning("Failed sign-in attempt")
            raise AuthorizationError("Invalid login credentials")
        return self._issue(doc)

    def get_user(self, access_token: str) -> AuthUser:
        return self._as_user(self._verify(access_token, "access"))

    def refresh_session(self, refresh_token: str) -> AuthSession:
        return self._issue(self._verify(refresh_token, "refresh"))

    def sign_out(self, access_token: str) -> None:
        doc = self._verify(access_token, "access")
        doc["token_version"] = doc.get("token_version", 0) + 1
        self.store.set(self._key(doc["email"]), doc)
        logger.info(f"User signed out: {doc['id']}")

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        # No mail transport locally; unknown addresses are not revealed either way.
        doc = self._load(email)
        if doc:
            logger.info(f"Password reset requested for user {doc['id']}")

    def update_user(
        self,
        access_token: str,
        data: Optional[Dict[str, Any]] = None,
        password: Optional[str] = None,
    ) -> AuthUser:
        doc = self._verify(access_token, "access")
        if data:
            doc["user_metadata"] = {**(doc.get("user_metadata") or {}), **data}
        if password:
            doc["password_hash"] = hash_password(password)
        self.store.set(self._key(doc["email"]), doc)
        return self._as_user(doc)


# -------- Firebase provider --------

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"


class FirebaseAuthProvider(AuthProvider):
    """Firebase Authentication.

    User management and token verification go through the Admin SDK;
    password sign-in, refresh and reset emails use the Identity Toolkit REST
    API, which needs FIREBASE_API_KEY.
    """

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        self.api_key = api_key or settings.FIREBASE_API_KEY
        self.http = http_client or httpx.Client(timeout=10.0)
        get_firebase_app()

    def _post(self, url: str, **kwargs) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamError("FIREBASE_API_KEY is not configured")
        try:
            response = self.http.post(url, params={"key": self.api_key}, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Auth service request failed: {e}")
            raise UpstreamError("Authentication service unavailable") from e

        if response.status_code == 400:
            message = response.json().get("error", {}).get("message", "")
            logger.warning(f"Auth service rejected request: {message}")
            raise AuthorizationError("Invalid login credentials")
        if response.status_code >= 300:
            logger.error(f"Auth service returned {response.status_code}")
            raise UpstreamError("Authentication service error")
        return response.json()

    def _user(self, uid: str) -> AuthUser:
        record = firebase_auth.get_user(uid)
        return AuthUser(id=record.uid, email=record.email or "", user_metadata=record.custom_claims or {})

    def _verify(self, access_token: str) -> str:
        try:
            claims = firebase_auth.verify_id_token(access_token, check_revoked=True)
        except firebase_auth.ExpiredIdTokenError:
            raise AuthorizationError("Session expired")
        except (firebase_auth.InvalidIdTokenError, firebase_auth.RevokedIdTokenError, ValueError):
            raise AuthorizationError("Invalid token")
        return claims["uid"]

    def _session(self, id_token: str, refresh_token: str, expires_in: str, uid: str) -> AuthSession:
        return AuthSession(
            access_token=id_token,
            refresh_token=refresh_token,
            expires_at=int(time.time()) + int(expires_in),
            user=self._user(uid),
        )

    def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthUser:
        metadata = metadata or {}
        try:
            record = firebase_auth.create_user(email=email, password=password, display_name=metadata.get("name") or None)
            if metadata:
                firebase_auth.set_custom_user_claims(record.uid, metadata)
        except firebase_auth.EmailAlreadyExistsError:
            raise ValidationError("User already registered", field="email")
        except firebase_exceptions.FirebaseError as e:
            logger.error(f"Firebase sign-up failed: {e}")
            raise UpstreamError("Could not create user") from e
        logger.info(f"User signed up: {record.uid}")
        return AuthUser(id=record.uid, email=email, user_metadata=metadata)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        body = self._post(
            f"{IDENTITY_TOOLKIT_URL}/accounts:signInWithPassword",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        return self._session(body["idToken"], body["refreshToken"], body["expiresIn"], body["localId"])

    def get_user(self, access_token: str) -> AuthUser:
        return self._user(self._verify(access_token))

    def refresh_session(self, refresh_token: str) -> AuthSession:
        body = self._post(
            SECURE_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        return self._session(body["id_token"], body["refresh_token"], body["expires_in"], body["user_id"])

    def sign_out(self, access_token: str) -> None:
        uid = self._verify(access_token)
        firebase_auth.revoke_refresh_tokens(uid)
        logger.info(f"User signed out: {uid}")

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        payload = {"requestType": "PASSWORD_RESET", "email": email}
        if redirect_to:
            payload["continueUrl"] = redirect_to
        try:
            self._post(f"{IDENTITY_TOOLKIT_URL}/accounts:sendOobCode", json=payload)
        except AuthorizationError:
            # Unknown addresses get the same answer as known ones.
            logger.info("Password reset requested for an unknown address")

    def update_user(
        self,
        access_token: str,
        data: Optional[Dict[str, Any]] = None,
        password: Optional[str] = None,
    ) -> AuthUser:
        uid = self._verify(access_token)
        try:
            if password:
                firebase_auth.update_user(uid, password=password)
            if data:
                current = firebase_auth.get_user(uid).custom_claims or {}
                firebase_auth.set_custom_user_claims(uid, {**current, **data})
        except firebase_exceptions.FirebaseError as e:
            logger.error(f"Firebase user update failed: {e}")
            raise UpstreamError("Could not update user") from e
        return self._user(uid)
