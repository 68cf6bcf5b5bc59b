"""
Post model for django-blog-editor.

Post.content holds serialized document markup whose images have already
been moved out of the markup and into MediaAsset storage.
"""
import hashlib

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from ..conf import editor_settings
from ..document import deserialize_or_empty, excerpt


def get_featured_image_path(instance, filename):
    return timezone.now().strftime(editor_settings.FEATURED_IMAGE_UPLOAD_PATH) + filename


class Post(models.Model):
    """Blog post authored with the editor."""

    STATUS_CHOICES = editor_settings.STATUS_CHOICES

    # Content
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, blank=True, db_index=True)
    content = models.TextField(help_text="Serialized document markup")
    featured_image = models.ImageField(
        upload_to=get_featured_image_path,
        blank=True,
        max_length=500,
    )
    video_url = models.URLField(blank=True)

    # SEO
    meta_title = models.CharField(max_length=255, blank=True)
    meta_description = models.TextField(blank=True)

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="editor_posts",
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=editor_settings.DEFAULT_STATUS,
    )
    published_at = models.DateTimeField(null=True, blank=True, db_index=True)

    # Deduplication
    content_hash = models.CharField(
        max_length=64,
        blank=True,
        db_index=True,
        help_text="SHA256 hash of the content markup",
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "-created_at"]),
        ]

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        # Auto-generate a unique slug from the title
        if not self.slug and self.title:
            base_slug = slugify(self.title)[:editor_settings.SLUG_MAX_LENGTH]
            slug = base_slug
            counter = 1
            while Post.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base_slug}-{counter}"
                counter += 1
            self.slug = slug

        if self.content:
            self.content_hash = hashlib.sha256(self.content.encode()).hexdigest()

        if self.is_published and not self.published_at:
            self.published_at = timezone.now()

        super().save(*args, **kwargs)

    @property
    def is_published(self):
        return self.status == "published"

    @property
    def document(self):
        """Content as a Document; malformed markup reads as empty."""
        return deserialize_or_empty(self.content)

    @property
    def excerpt(self):
        return excerpt(self.content)

    @property
    def featured_image_url(self):
        if self.featured_image:
            return self.featured_image.url
        return None

    def to_payload(self):
        """API representation, as returned by the storage endpoints."""
        return {
            "id": self.pk,
            "title": self.title,
            "slug": self.slug,
            "content": self.content,
            "status": self.status,
            "featured_image": self.featured_image_url,
            "video_url": self.video_url,
            "meta_title": self.meta_title,
            "meta_description": self.meta_description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
