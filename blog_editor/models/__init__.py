"""
Models for django-blog-editor.

    from blog_editor.models import Post, MediaAsset
"""
from .posts import Post
from .media import MediaAsset

__all__ = [
    "Post",
    "MediaAsset",
]
