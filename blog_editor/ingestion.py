"""
Ingestion adapters.

Each adapter turns one source of files (the toolbar file picker, a drop,
a clipboard paste) into an Ingested(file, kind) pair for the upload
coordinator. Drop and paste events are described by the small event
classes below; a host UI fills them from its own event objects.
"""
import mimetypes
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional

from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from .exceptions import InvalidMediaType, UnsupportedDrop
from .uploads import IMAGE, MEDIA_KINDS


@dataclass(frozen=True)
class Ingested:
    file: Any
    kind: str


@dataclass
class ClipboardItem:
    """One entry of a paste payload."""

    type: str
    data: bytes = b""
    name: Optional[str] = None

    def as_file(self):
        return SimpleUploadedFile(
            self.name or generate_filename(self.type, prefix="pasted"),
            self.data,
            content_type=self.type,
        )


@dataclass
class EditorEvent:
    default_prevented: bool = field(default=False, init=False)

    def prevent_default(self):
        self.default_prevented = True


@dataclass
class DropEvent(EditorEvent):
    files: List[Any] = field(default_factory=list)


@dataclass
class PasteEvent(EditorEvent):
    items: List[ClipboardItem] = field(default_factory=list)


def generate_filename(mime_type, prefix="image"):
    """
    Unique file name from the current time and the mime subtype,
    e.g. image-1700000000000-1a2b3c4d.png
    """
    extension = mimetypes.guess_extension(mime_type or "")
    if not extension:
        subtype = (mime_type or "").partition("/")[2].split(";")[0]
        extension = "." + (subtype or "bin")
    stamp = int(timezone.now().timestamp() * 1000)
    return f"{prefix}-{stamp}-{uuid.uuid4().hex[:8]}{extension}"


def classify(content_type):
    """Media kind for a mime type, or None."""
    major = (content_type or "").partition("/")[0].lower()
    return major if major in MEDIA_KINDS else None


def from_picker(file, kind):
    """A file chosen through the image or video toolbar button."""
    if kind not in MEDIA_KINDS:
        raise InvalidMediaType(f"Unknown media kind: {kind}")
    return Ingested(file, kind)


def from_drop(event):
    """
    The first dropped file, classified by its mime type.

    Returns None for drops without files so the host can handle them.
    """
    if not event.files:
        return None
    file = event.files[0]
    kind = classify(getattr(file, "content_type", None))
    if kind is None:
        raise UnsupportedDrop(f"{file.name} is not an image or a video")
    event.prevent_default()
    return Ingested(file, kind)


def from_paste(event):
    """
    The first pasted item whose type mentions an image.

    The paste's default text/markup insertion is suppressed when an image
    is found. Returns None otherwise.
    """
    for item in event.items:
        if "image" in (item.type or ""):
            event.prevent_default()
            return Ingested(item.as_file(), IMAGE)
    return None
