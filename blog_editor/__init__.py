"""
django-blog-editor - rich-content editing core for a Django blog.

Features:
- Immutable document model with a strict HTML codec
- Pure toolbar commands over a document and a selection
- Single-slot media upload coordination with progress
- File picker, drag-and-drop and clipboard ingestion
- Inline image extraction before posts are saved
- REST and in-process storage backends
"""

__version__ = "0.1.0"
