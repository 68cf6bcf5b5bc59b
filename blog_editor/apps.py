"""Django app configuration for blog_editor."""
from django.apps import AppConfig


class BlogEditorConfig(AppConfig):
    """Configuration for the blog editor app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "blog_editor"
    verbose_name = "Blog Editor"
