"""
Media upload coordination.

The coordinator owns at most one UploadTask at a time. A task moves
through

    validating -> uploading -> succeeded
    validating -> uploading -> failed
    validating -> uploading -> cancelled
    validating -> failed

Progress is owned by the coordinator: it starts at UPLOAD_PROGRESS_START,
follows byte progress when the transport reports any, can be nudged with
tick(), and only reaches 100 once the storage collaborator confirms the
upload.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from .conf import editor_settings
from .exceptions import (
    EditorError,
    InvalidMediaType,
    MediaError,
    MediaTooLarge,
    UploadBusy,
    UploadFailed,
)
from .storage import Asset

logger = logging.getLogger(__name__)

# Media kinds
IMAGE = "image"
VIDEO = "video"
MEDIA_KINDS = (IMAGE, VIDEO)

# Task states
VALIDATING = "validating"
UPLOADING = "uploading"
SUCCEEDED = "succeeded"
FAILED = "failed"
CANCELLED = "cancelled"

TRANSITIONS = {
    VALIDATING: (UPLOADING, FAILED),
    UPLOADING: (SUCCEEDED, FAILED, CANCELLED),
}


def max_size_for(kind):
    if kind == VIDEO:
        return editor_settings.VIDEO_MAX_BYTES
    return editor_settings.IMAGE_MAX_BYTES


def validate_media(file, kind):
    """
    Check a candidate file before anything is sent.

    Raises InvalidMediaType when the declared type does not match kind
    and MediaTooLarge when the file is over the limit for kind.
    """
    if kind not in MEDIA_KINDS:
        raise InvalidMediaType(f"Unknown media kind: {kind}")

    content_type = (getattr(file, "content_type", None) or "").lower()
    if not content_type.startswith(f"{kind}/"):
        raise InvalidMediaType(
            f"{file.name} is not a{'n' if kind == IMAGE else ''} {kind} file"
        )

    limit = max_size_for(kind)
    if file.size > limit:
        raise MediaTooLarge(
            f"{kind.capitalize()} size should be less than {limit // (1024 * 1024)}MB"
        )


@dataclass(eq=False)
class UploadTask:
    """Lifecycle record of one file's upload."""

    file: Any
    kind: str
    status: str = VALIDATING
    progress: int = 0
    result_asset: Optional[Asset] = None
    error: Optional[EditorError] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __repr__(self):
        return f"<UploadTask {self.id} {self.kind} {self.status} {self.progress}%>"

    @property
    def is_active(self):
        return self.status in (VALIDATING, UPLOADING)

    def move_to(self, status):
        if status not in TRANSITIONS.get(self.status, ()):
            raise ValueError(f"Upload cannot go from {self.status} to {status}")
        self.status = status

    def advance(self, value):
        """Raise progress towards value, never past the pre-confirmation ceiling."""
        if self.status != UPLOADING:
            return False
        value = min(int(value), editor_settings.UPLOAD_PROGRESS_CEILING)
        if value <= self.progress:
            return False
        self.progress = value
        return True


class MediaUploadCoordinator:
    """
    Validates, uploads and tracks editor media, one file at a time.

    on_change, when given, is called with the task after every status or
    progress change.
    """

    def __init__(self, storage, on_change=None):
        self.storage = storage
        self.on_change = on_change
        self._active = None

    @property
    def active_task(self):
        return self._active

    @property
    def busy(self):
        return self._active is not None

    def _changed(self, task):
        if self.on_change is not None:
            self.on_change(task)

    def _finish(self, task, status, error=None, asset=None):
        task.move_to(status)
        task.error = error
        task.result_asset = asset
        if status == SUCCEEDED:
            task.progress = 100
        if self._active is task:
            self._active = None
        self._changed(task)

    def upload_file(self, file, progress=None):
        """
        Upload file and return its Asset, without any task bookkeeping.

        Raises UploadFailed when the storage collaborator reports an error.
        """
        response = self.storage.upload_media(file, progress=progress)
        if not response.success:
            raise UploadFailed(response.error or f"Uploading {file.name} failed")
        data = response.data or {}
        if not data.get("url"):
            raise UploadFailed(f"Upload of {file.name} returned no URL")
        return Asset.from_data(data)

    def upload(self, file, kind, on_success=None):
        """
        Run one upload through the full task lifecycle.

        Raises UploadBusy, without touching the active task, when another
        upload is in flight. Every other outcome is recorded on the
        returned task. on_success(asset) runs only for uploads that were
        still current when the response arrived.
        """
        if self._active is not None:
            raise UploadBusy()

        task = UploadTask(file=file, kind=kind)
        self._active = task
        self._changed(task)

        try:
            validate_media(file, kind)
        except MediaError as exc:
            logger.info("Rejected %s upload of %s: %s", kind, file.name, exc)
            self._finish(task, FAILED, error=exc)
            return task

        task.move_to(UPLOADING)
        task.progress = editor_settings.UPLOAD_PROGRESS_START
        self._changed(task)

        def report(sent, total):
            if self._active is task and total:
                start = editor_settings.UPLOAD_PROGRESS_START
                span = editor_settings.UPLOAD_PROGRESS_CEILING - start
                if task.advance(start + span * sent / total):
                    self._changed(task)

        try:
            asset = self.upload_file(file, progress=report)
        except UploadFailed as exc:
            if self._active is task:
                logger.warning("Upload of %s failed: %s", file.name, exc)
                self._finish(task, FAILED, error=exc)
            else:
                logger.info("Ignoring failure of cancelled upload %s", task.id)
            return task
        except Exception as exc:
            if self._active is task:
                logger.warning("Upload of %s raised %r", file.name, exc)
                self._finish(task, FAILED, error=UploadFailed(str(exc)))
            raise

        if self._active is not task:
            logger.info("Discarding response for cancelled upload %s", task.id)
            return task

        self._finish(task, SUCCEEDED, asset=asset)
        if on_success is not None:
            on_success(asset)
        return task

    def tick(self):
        """Advance synthetic progress of the active upload by one step."""
        task = self._active
        if task is None or task.status != UPLOADING:
            return None
        if task.advance(task.progress + editor_settings.UPLOAD_PROGRESS_STEP):
            self._changed(task)
        return task.progress

    def cancel(self):
        """
        Cancel the active upload.

        The slot is freed at once. The transport call is not interrupted;
        its response is discarded when it arrives.
        """
        task = self._active
        if task is None or task.status != UPLOADING:
            return False
        task.move_to(CANCELLED)
        self._active = None
        logger.info("Cancelled upload %s", task.id)
        self._changed(task)
        return True
