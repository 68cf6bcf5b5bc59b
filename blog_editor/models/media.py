"""
Media asset model for django-blog-editor.

Uploaded editor media is stored once per SHA256 content hash, so pasting
the same image twice yields the same asset URL.
"""
import hashlib
import logging

from django.conf import settings
from django.db import models
from django.utils import timezone

from ..conf import editor_settings
from ..storage import Asset

logger = logging.getLogger(__name__)


def get_upload_path(instance, filename):
    """Generate upload path for media files."""
    return timezone.now().strftime(editor_settings.MEDIA_UPLOAD_PATH) + filename


class MediaAsset(models.Model):
    """
    Durable, URL-addressable media uploaded from the editor.

    Files are stored once and referenced by SHA256 content hash.
    """

    TYPE_CHOICES = [
        ("IMAGE", "Image"),
        ("GIF", "GIF"),
        ("VIDEO", "Video"),
    ]

    file = models.FileField(upload_to=get_upload_path)
    content_hash = models.CharField(
        max_length=64,
        unique=True,
        db_index=True,
        help_text="SHA256 hash of file content for deduplication",
    )
    media_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default="IMAGE")
    original_filename = models.CharField(max_length=255)
    file_size = models.PositiveIntegerField(default=0, help_text="File size in bytes")
    mime_type = models.CharField(max_length=100, blank=True)
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="uploaded_editor_media",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Media Asset"
        verbose_name_plural = "Media Assets"

    def __str__(self):
        return f"{self.original_filename} ({self.media_type})"

    @property
    def file_url(self):
        """Return URL to the file."""
        if self.file:
            return self.file.url
        return None

    @property
    def is_image(self):
        return self.media_type in ("IMAGE", "GIF")

    @property
    def human_file_size(self):
        """Return human-readable file size."""
        size = self.file_size
        for unit in ["B", "KB", "MB", "GB"]:
            if size < 1024:
                return f"{size:.1f} {unit}"
            size /= 1024
        return f"{size:.1f} TB"

    def to_asset(self):
        return Asset(url=self.file_url, mime_type=self.mime_type)

    @classmethod
    def get_or_create_from_file(cls, file_obj, uploaded_by=None):
        """
        Get existing media item or create new one based on content hash.

        Args:
            file_obj: Django UploadedFile or file-like object
            uploaded_by: User who uploaded the file

        Returns:
            (MediaAsset instance, created boolean)
        """
        hasher = hashlib.sha256()
        for chunk in file_obj.chunks():
            hasher.update(chunk)
        content_hash = hasher.hexdigest()

        existing = cls.objects.filter(content_hash=content_hash).first()
        if existing:
            return existing, False

        mime_type = getattr(file_obj, "content_type", "") or ""
        if mime_type.startswith("image/gif"):
            media_type = "GIF"
        elif mime_type.startswith("video/"):
            media_type = "VIDEO"
        else:
            media_type = "IMAGE"

        file_obj.seek(0)

        item = cls.objects.create(
            file=file_obj,
            content_hash=content_hash,
            media_type=media_type,
            original_filename=file_obj.name,
            file_size=file_obj.size,
            mime_type=mime_type,
            uploaded_by=uploaded_by,
        )

        if item.is_image:
            item._read_dimensions()

        return item, True

    def _read_dimensions(self):
        """Record pixel dimensions; the file itself is left untouched."""
        from PIL import Image, UnidentifiedImageError

        try:
            self.file.open("rb")
            with Image.open(self.file) as img:
                self.width, self.height = img.size
        except (UnidentifiedImageError, OSError):
            logger.info("Could not read dimensions of %s", self.original_filename)
            return
        finally:
            self.file.close()
        self.save(update_fields=["width", "height"])
