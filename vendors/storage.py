"""
Bill attachment storage.

Bills are written through Django's storage API so the backend (local
filesystem, S3, ...) is a settings concern. Callers only see
``upload(file)`` and, when the surrounding write fails,
``discard(name)``.
"""
import logging
import uuid
from pathlib import Path
from typing import NamedTuple

from django.conf import settings
from django.core.files.storage import default_storage
from rest_framework.exceptions import ValidationError

logger = logging.getLogger(__name__)


class BillStorageError(Exception):
    """Raised when a bill could not be written to storage"""


class StoredBill(NamedTuple):
    name: str
    url: str


class BillStorageService:
    """
    Validate and store vendor bill documents.

    Usage:
        stored = BillStorageService().upload(request.FILES['bill'])
        vendor.bill_url = stored.url
    """

    ALLOWED_EXTENSIONS = {'.pdf', '.png', '.jpg', '.jpeg', '.webp', '.doc', '.docx'}
    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

    def __init__(self, storage=None, folder=None):
        self.storage = storage or default_storage
        self.folder = folder or getattr(settings, 'BILL_UPLOAD_DIR', 'vendor_bills')

    def _get_extension(self, filename: str) -> str:
        return Path(filename).suffix.lower()

    def validate(self, file) -> list[str]:
        """Returns list of error messages (empty = valid)"""
        errors = []
        ext = self._get_extension(file.name)
        if ext not in self.ALLOWED_EXTENSIONS:
            errors.append(
                f"File type '{ext}' is not allowed. "
                f"Allowed: {', '.join(sorted(self.ALLOWED_EXTENSIONS))}"
            )
        if file.size > self.MAX_FILE_SIZE:
            mb = file.size / (1024 * 1024)
            errors.append(f"File size {mb:.1f}MB exceeds maximum of 10MB.")
        return errors

    def upload(self, file) -> StoredBill:
        """
        Store the uploaded bill and return its storage name and public URL.

        The uploaded file is closed afterwards whatever the outcome, which
        removes Django's temporary file for large uploads.

        Raises:
            ValidationError: unsupported type or oversized file
            BillStorageError: the storage backend failed
        """
        try:
            errors = self.validate(file)
            if errors:
                raise ValidationError({'bill': errors})

            name = f"{self.folder}/{uuid.uuid4().hex}{self._get_extension(file.name)}"
            try:
                saved_name = self.storage.save(name, file)
                url = self.storage.url(saved_name)
            except Exception as exc:
                logger.error("Bill upload failed for %s: %s", file.name, exc, exc_info=True)
                raise BillStorageError(f"Could not store bill '{file.name}'") from exc

            logger.info("Bill stored at %s", saved_name)
            return StoredBill(saved_name, url)
        finally:
            file.close()

    def discard(self, name: str) -> None:
        """
        Remove a stored bill whose vendor change did not go through.
        A failure here is only logged; the caller re-raises its own error.
        """
        try:
            self.storage.delete(name)
        except Exception as exc:
            logger.error("Could not remove orphaned bill %s: %s", name, exc, exc_info=True)
        else:
            logger.info("Orphaned bill %s removed", name)
