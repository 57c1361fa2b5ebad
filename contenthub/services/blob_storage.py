"""
Media storage: Firebase Cloud Storage bucket or a local upload directory.

Both backends hand out long-lived signed URLs; the local one signs with
SECRET_KEY and is served by the ``/files`` route.
"""

from __future__ import annotations

import hashlib
import hmac
import io
import logging
import os
import re
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, Optional, Tuple
from urllib.parse import quote, urlencode

from google.api_core import exceptions as google_exceptions
from PIL import Image, UnidentifiedImageError

from contenthub.core.config import settings
from contenthub.core.errors import NotFoundError, StorageError, ValidationError
from contenthub.services.firebase_client import get_storage_bucket

logger = logging.getLogger(__name__)

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class BlobStore(ABC):
    """Opaque object store: put bytes, get a URL back"""

    @abstractmethod
    def ensure_bucket(self) -> None:
        ...

    @abstractmethod
    def upload(self, name: str, data: bytes, content_type: str) -> str:
        """Store the object and return its path within the bucket"""

    @abstractmethod
    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        ...


class FirebaseBlobStore(BlobStore):
    def __init__(self, bucket=None):
        self._bucket = bucket

    @property
    def bucket(self):
        if self._bucket is None:
            self._bucket = get_storage_bucket()
        return self._bucket

    def ensure_bucket(self) -> None:
        try:
            if not self.bucket.exists():
                self.bucket.create()
                logger.info(f"Created storage bucket {self.bucket.name}")
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Bucket provisioning failed: {e}")
            raise StorageError("Could not provision media bucket") from e

    def upload(self, name: str, data: bytes, content_type: str) -> str:
        try:
            blob = self.bucket.blob(name)
            blob.upload_from_string(data, content_type=content_type)
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Upload of {name} failed: {e}")
            raise StorageError("Upload failed") from e
        return name

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        try:
            return self.bucket.blob(path).generate_signed_url(expiration=timedelta(seconds=ttl_seconds))
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Signing URL for {path} failed: {e}")
            raise StorageError("Could not create file URL") from e


class LocalBlobStore(BlobStore):
    """Files under UPLOAD_DIR, readable through HMAC-signed URLs"""

    def __init__(self, root: Optional[str] = None, secret: Optional[str] = None, base_url: Optional[str] = None):
        self.root = os.path.abspath(root or settings.UPLOAD_DIR)
        self.secret = (secret or settings.SECRET_KEY).encode("utf-8")
        self.base_url = base_url or f"{settings.BASE_URL}{settings.API_PREFIX}/files"

    def ensure_bucket(self) -> None:
        if not os.path.isdir(self.root):
            os.makedirs(self.root, exist_ok=True)
            logger.info(f"Created upload directory {self.root}")

    def resolve(self, path: str) -> str:
        """Absolute file path for an object, refusing anything outside the root"""
        full = os.path.abspath(os.path.join(self.root, path))
        if not full.startswith(self.root + os.sep):
            raise NotFoundError("File")
        return full

    def upload(self, name: str, data: bytes, content_type: str) -> str:
        self.ensure_bucket()
        try:
            with open(self.resolve(name), "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Writing upload {name} failed: {e}")
            raise StorageError("Upload failed") from e
        return name

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self.secret, message, hashlib.sha256).hexdigest()

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        expires = int(time.time()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._signature(path, expires)})
        return f"{self.base_url}/{quote(path)}?{query}"

    def verify(self, path: str, expires: int, signature: str) -> bool:
        if expires < time.time():
            return False
        return hmac.compare_digest(self._signature(path, expires), signature)


def _matches(content_type: str, allowed: str) -> bool:
    if allowed.endswith("/*"):
        return content_type.startswith(allowed[:-1])
    return content_type == allowed


def safe_filename(filename: str) -> str:
    name = _UNSAFE_NAME.sub("-", os.path.basename(filename or "")).strip("-.")
    return name or "upload"


def prepare_upload(filename: str, data: bytes, content_type: str) -> Tuple[str, bytes, str]:
    """Apply the upload policy; returns (object name, bytes, content type).

    Images wider than IMAGE_MAX_WIDTH are scaled down and re-encoded as JPEG.
    """
    content_type = (content_type or "application/octet-stream").lower()
    if not any(_matches(content_type, allowed) for allowed in settings.ALLOWED_UPLOAD_TYPES):
        raise ValidationError(f"File type {content_type} is not allowed", field="file")
    if len(data) > settings.MAX_UPLOAD_SIZE:
        limit_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
        raise ValidationError(f"File exceeds the {limit_mb}MB limit", field="file")

    filename = safe_filename(filename)

    if content_type.startswith("image/"):
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError):
            logger.info(f"Storing {filename} unmodified; not a raster image Pillow can read")
            img = None

        if img is not None and img.width > settings.IMAGE_MAX_WIDTH:
            height = round(img.height * settings.IMAGE_MAX_WIDTH / img.width)
            img = img.convert("RGB").resize((settings.IMAGE_MAX_WIDTH, height), Image.LANCZOS)
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=settings.IMAGE_QUALITY)
            data = buffer.getvalue()
            content_type = "image/jpeg"
            filename = f"{os.path.splitext(filename)[0]}.jpg"

    name = f"{int(time.time() * 1000)}-{filename}"
    return name, data, content_type


def upload_media(store: BlobStore, filename: str, data: bytes, content_type: str) -> Dict[str, str]:
    """Upload a file under the media policy and return its path and signed URL"""
    name, data, content_type = prepare_upload(filename, data, content_type)
    path = store.upload(name, data, content_type)
    url = store.create_signed_url(path, settings.SIGNED_URL_TTL)
    logger.info(f"Uploaded {path} ({len(data)} bytes, {content_type})")
    return {"path": path, "url": url}


def get_blob_store() -> BlobStore:
    if settings.USE_FIREBASE:
        return FirebaseBlobStore()
    return LocalBlobStore()
