"""
Editing session for one post.

EditorSession ties the pieces together the way the authoring form uses
them: it hydrates the document from storage, runs toolbar commands,
routes picked, dropped and pasted files through the upload coordinator,
and on save moves inline images out of the markup before handing the
post to the storage collaborator.

Nothing here reads global state. The storage backend (which carries the
user's credentials) and the can_edit permission flag are passed in.
"""
import logging
from dataclasses import dataclass

from django.contrib.messages import constants as message_constants
from django.core.files import File

from .commands import active_formats, dispatch
from .conf import editor_settings
from .document import Document, Selection, clamp, deserialize, excerpt, is_empty, serialize
from .exceptions import EditorError, MediaError, ParseError, UploadBusy
from .ingestion import from_drop, from_paste, from_picker
from .storage import ApiResponse
from .transform import inline_images_to_assets
from .uploads import FAILED, IMAGE, SUCCEEDED, MediaUploadCoordinator, validate_media

logger = logging.getLogger(__name__)

INFO = message_constants.INFO
SUCCESS = message_constants.SUCCESS
WARNING = message_constants.WARNING
ERROR = message_constants.ERROR

POST_FIELDS = (
    "title",
    "status",
    "featured_image",
    "video_url",
    "meta_title",
    "meta_description",
)


@dataclass(frozen=True)
class Notification:
    """A user-visible message, leveled like django.contrib.messages."""

    level: int
    message: str

    @property
    def tag(self):
        return message_constants.DEFAULT_TAGS.get(self.level, "")

    def __str__(self):
        return self.message


class EditorSession:
    """
    State of one editing surface, from mount to save.

    The document is replaced, never mutated, and is re-serialized into
    self.markup after every change; on_change(markup) is called each time.
    """

    def __init__(
        self,
        storage,
        content_id=None,
        can_edit=True,
        on_change=None,
        notify=None,
        on_upload_change=None,
    ):
        self.storage = storage
        self.content_id = content_id
        self.can_edit = can_edit
        self.on_change = on_change
        self._notify = notify
        self.notifications = []
        self.fields = {}
        self.coordinator = MediaUploadCoordinator(storage, on_change=on_upload_change)
        self._replace(Document.empty(), Selection())

    @property
    def is_edit_mode(self):
        return self.content_id is not None

    def notify(self, level, message):
        notification = Notification(level, message)
        self.notifications.append(notification)
        if self._notify is not None:
            self._notify(notification)
        return notification

    def _replace(self, document, selection):
        changed = getattr(self, "document", document) != document
        self.document = document
        self.selection = clamp(document, selection)
        self.markup = serialize(document)
        self.formats = active_formats(self.document, self.selection)
        if changed and self.on_change is not None:
            self.on_change(self.markup)

    # Loading

    def load(self):
        """
        Hydrate the document of an existing post.

        Unreadable or missing content falls back to the empty document
        with a notification. Returns False when the post could not be
        fetched.
        """
        if not self.is_edit_mode:
            self._replace(Document.empty(), Selection())
            return True

        response = self.storage.get_content_by_id(self.content_id)
        if not response.success:
            self.notify(ERROR, f"Failed to fetch blog: {response.error or 'unknown error'}")
            self._replace(Document.empty(), Selection())
            return False

        data = response.data or {}
        self.fields = {name: data.get(name) for name in POST_FIELDS}
        try:
            document = deserialize(data.get("content"))
        except ParseError as exc:
            logger.warning("Post %s has malformed content: %s", self.content_id, exc)
            self.notify(WARNING, "The saved content could not be read and was reset")
            document = Document.empty()
        self._replace(document, Selection())
        return True

    # Commands

    def _check_editable(self):
        if not self.can_edit:
            self.notify(WARNING, "You do not have permission to edit this post")
        return self.can_edit

    def select(self, selection):
        self.selection = clamp(self.document, selection)
        self.formats = active_formats(self.document, self.selection)

    def execute(self, name, **params):
        """Run a catalog command against the current document and selection."""
        if not self._check_editable():
            return None
        result = dispatch(name, self.document, self.selection, **params)
        self._replace(result.document, result.selection)
        if result.notice:
            self.notify(INFO, result.notice)
        return result

    def is_active(self, format_name):
        return format_name in self.formats

    # Media

    def _insert_asset(self, asset):
        self.execute("insert_asset_node", asset=asset)

    def upload(self, file, kind):
        """Upload a file and insert it at the cursor once it is stored."""
        if not self._check_editable():
            return None
        try:
            task = self.coordinator.upload(file, kind, on_success=self._insert_asset)
        except UploadBusy as exc:
            self.notify(WARNING, exc.message)
            return None

        if task.status == FAILED:
            self.notify(ERROR, task.error.message)
        elif task.status == SUCCEEDED:
            self.notify(SUCCESS, f"{kind.capitalize()} uploaded")
        return task

    def cancel_upload(self):
        if self.coordinator.cancel():
            self.notify(INFO, "Upload cancelled")
            return True
        return False

    def _ingest(self, adapter, *args):
        try:
            ingested = adapter(*args)
        except EditorError as exc:
            self.notify(ERROR, exc.message)
            return None
        if ingested is None:
            return None
        return self.upload(ingested.file, ingested.kind)

    def pick_file(self, file, kind):
        return self._ingest(from_picker, file, kind)

    def drop(self, event):
        return self._ingest(from_drop, event)

    def paste(self, event):
        return self._ingest(from_paste, event)

    # Saving

    def validate(self, title):
        errors = {}
        if not (title or "").strip():
            errors["title"] = "Title is required"
        if is_empty(self.document):
            errors["content"] = "Content is required"
        return errors

    def save(
        self,
        title,
        status=None,
        featured_image=None,
        video_url="",
        meta_title="",
        meta_description="",
    ):
        """
        Create or update the post.

        Inline images are uploaded first; the ones that fail stay inline.
        On any failure the document is kept as is so the user can retry.
        Returns the storage ApiResponse.
        """
        errors = self.validate(title)
        if errors:
            for message in errors.values():
                self.notify(ERROR, message)
            return ApiResponse.fail("; ".join(errors.values()))

        if isinstance(featured_image, File):
            try:
                validate_media(featured_image, IMAGE)
            except MediaError as exc:
                self.notify(ERROR, exc.message)
                return ApiResponse.fail(exc.message)

        result = inline_images_to_assets(serialize(self.document), self.coordinator.upload_file)
        if result.uploaded:
            self._replace(deserialize(result.markup), self.selection)
        if result.failed:
            self.notify(WARNING, f"{len(result.failed)} image(s) could not be uploaded and were kept inline")

        payload = {
            "title": title,
            "content": result.markup,
            "status": status or editor_settings.DEFAULT_STATUS,
            "video_url": video_url or "",
            "meta_title": meta_title or title,
            "meta_description": meta_description or excerpt(self.document),
        }
        if featured_image is not None:
            payload["featured_image"] = featured_image

        if self.is_edit_mode:
            response = self.storage.update_content(self.content_id, payload)
        else:
            response = self.storage.create_content(payload)

        if not response.success:
            logger.warning("Saving post %s failed: %s", self.content_id, response.error)
            self.notify(ERROR, f"Failed to save blog: {response.error or 'please try again'}")
            return response

        if self.is_edit_mode:
            self.notify(SUCCESS, "Blog updated successfully!")
        else:
            self.content_id = (response.data or {}).get("id")
            self.notify(SUCCESS, "Blog created successfully!")
        return response
