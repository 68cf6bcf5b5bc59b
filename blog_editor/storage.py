"""
Storage collaborator contract.

The editor core only talks to a StorageBackend. Every call returns an
ApiResponse instead of raising, mirroring the {success, data, error}
envelope of the blog REST API. Two backends ship with the app:

- blog_editor.client.BlogApiClient, the remote REST API over HTTP;
- DjangoStorage below, the same contract served by this app's models.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.core.exceptions import ValidationError
from django.core.files import File

logger = logging.getLogger(__name__)

CONTENT_FIELDS = (
    "title",
    "content",
    "status",
    "video_url",
    "meta_title",
    "meta_description",
)


@dataclass(frozen=True)
class Asset:
    """Durable result of an upload: a URL plus its mime type."""

    url: str
    mime_type: str = ""

    @property
    def is_video(self):
        return self.mime_type.startswith("video/")

    @classmethod
    def from_data(cls, data):
        return cls(url=data["url"], mime_type=data.get("mimeType") or "")


@dataclass
class ApiResponse:
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error):
        return cls(success=False, error=error)

    @classmethod
    def from_json(cls, body):
        """Build a response from a decoded JSON envelope."""
        if not isinstance(body, dict):
            return cls.fail("Unexpected response from server")
        error = body.get("error") or body.get("message")
        if isinstance(error, dict):
            error = error.get("message") or str(error)
        return cls(success=bool(body.get("success")), data=body.get("data"), error=error)


class StorageBackend:
    """Blog storage API consumed by the editor."""

    def upload_media(self, file, progress=None):
        """
        Upload a media file.

        progress, when given, may be called with (bytes_sent, total_bytes).
        On success data is {"url": ..., "mimeType": ...}.
        """
        raise NotImplementedError

    def create_content(self, payload):
        raise NotImplementedError

    def update_content(self, content_id, payload):
        raise NotImplementedError

    def get_content_by_id(self, content_id):
        raise NotImplementedError


class DjangoStorage(StorageBackend):
    """
    In-process storage backed by the Post and MediaAsset models.

    The acting user is passed in explicitly; it becomes the uploader and
    author, and only its own posts may be updated.
    """

    def __init__(self, user=None):
        self.user = user

    def upload_media(self, file, progress=None):
        from .models import MediaAsset

        try:
            item, created = MediaAsset.get_or_create_from_file(file, uploaded_by=self.user)
        except OSError as exc:
            logger.exception("Storing %s failed", file.name)
            return ApiResponse.fail(f"Could not store {file.name}: {exc}")

        if progress is not None:
            progress(file.size, file.size)
        if created:
            logger.info("Stored %s (%s)", item.original_filename, item.human_file_size)
        else:
            logger.debug("Reusing stored media %s for %s", item.pk, file.name)
        return ApiResponse.ok({"url": item.file_url, "mimeType": item.mime_type})

    def create_content(self, payload):
        from .models import Post

        return self._save(Post(author=self.user), payload)

    def update_content(self, content_id, payload):
        from .models import Post

        post = Post.objects.filter(pk=content_id).first()
        if post is None:
            return ApiResponse.fail("Blog not found")
        if self.user is not None and post.author_id not in (None, self.user.pk):
            return ApiResponse.fail("You can only edit your own posts")
        return self._save(post, payload)

    def get_content_by_id(self, content_id):
        from .models import Post

        post = Post.objects.filter(pk=content_id).first()
        if post is None:
            return ApiResponse.fail("Blog not found")
        return ApiResponse.ok(post.to_payload())

    def _save(self, post, payload):
        for name in CONTENT_FIELDS:
            if name in payload:
                setattr(post, name, payload[name] or "")

        # Existing image references are passed through untouched
        image = payload.get("featured_image")
        if isinstance(image, File):
            post.featured_image.save(image.name, image, save=False)

        try:
            post.full_clean()
        except ValidationError as exc:
            return ApiResponse.fail("; ".join(exc.messages))

        post.save()
        return ApiResponse.ok(post.to_payload())
