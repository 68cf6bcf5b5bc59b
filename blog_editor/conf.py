"""
Configuration settings for django-blog-editor.

Override these in your Django settings.py:

    BLOG_EDITOR = {
        'IMAGE_MAX_SIZE_MB': 10,
        'VIDEO_MAX_SIZE_MB': 50,
        'API_BASE_URL': 'https://blog.example.com/api',
        ...
    }
"""
from django.conf import settings

DEFAULTS = {
    # Media validation
    "IMAGE_MAX_SIZE_MB": 10,
    "VIDEO_MAX_SIZE_MB": 50,
    "MEDIA_UPLOAD_PATH": "blog/media/%Y/%m/",
    "FEATURED_IMAGE_UPLOAD_PATH": "blog/featured/%Y/%m/",

    # Upload progress reporting
    "UPLOAD_PROGRESS_START": 10,
    "UPLOAD_PROGRESS_STEP": 10,
    "UPLOAD_PROGRESS_CEILING": 90,

    # Remote storage API
    "API_BASE_URL": "http://localhost:5000/api",
    "API_TIMEOUT": 30,

    # Posts
    "STATUS_CHOICES": [
        ("draft", "Draft"),
        ("published", "Published"),
    ],
    "DEFAULT_STATUS": "draft",
    "EXCERPT_LENGTH": 150,

    # SEO
    "SLUG_MAX_LENGTH": 100,
}

MEGABYTE = 1024 * 1024


class BlogEditorSettings:
    """
    Lazy settings object that reads from Django settings.

    Access via: from blog_editor.conf import editor_settings
    """

    def __getattr__(self, name):
        if name not in DEFAULTS:
            raise AttributeError(f"Invalid blog_editor setting: {name}")

        user_settings = getattr(settings, "BLOG_EDITOR", {})
        return user_settings.get(name, DEFAULTS[name])

    @property
    def IMAGE_MAX_BYTES(self):
        return self.IMAGE_MAX_SIZE_MB * MEGABYTE

    @property
    def VIDEO_MAX_BYTES(self):
        return self.VIDEO_MAX_SIZE_MB * MEGABYTE


editor_settings = BlogEditorSettings()
