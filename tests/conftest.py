"""
Shared fixtures for django-blog-editor tests.
"""
import io

import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image

from blog_editor.storage import ApiResponse, StorageBackend


class FakeStorage(StorageBackend):
    """In-memory storage collaborator that records every call."""

    def __init__(self):
        self.posts = {}
        self.uploaded = []
        self.payloads = []
        self.upload_error = None
        self.save_error = None
        self.during_upload = None

    def upload_media(self, file, progress=None):
        self.uploaded.append(file)
        if self.during_upload is not None:
            self.during_upload(progress)
        if self.upload_error:
            return ApiResponse.fail(self.upload_error)
        extension = file.name.rsplit(".", 1)[-1]
        return ApiResponse.ok({
            "url": f"https://cdn.test/media/{len(self.uploaded)}.{extension}",
            "mimeType": file.content_type,
        })

    def create_content(self, payload):
        self.payloads.append(payload)
        if self.save_error:
            return ApiResponse.fail(self.save_error)
        post_id = len(self.posts) + 1
        self.posts[post_id] = dict(payload, id=post_id)
        return ApiResponse.ok(self.posts[post_id])

    def update_content(self, content_id, payload):
        self.payloads.append(payload)
        if self.save_error:
            return ApiResponse.fail(self.save_error)
        if content_id not in self.posts:
            return ApiResponse.fail("Blog not found")
        self.posts[content_id].update(payload)
        return ApiResponse.ok(self.posts[content_id])

    def get_content_by_id(self, content_id):
        if content_id not in self.posts:
            return ApiResponse.fail("Blog not found")
        return ApiResponse.ok(self.posts[content_id])


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def png_bytes():
    """A real 4x3 PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 3), color=(200, 30, 30)).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def image_file(png_bytes):
    return SimpleUploadedFile("photo.png", png_bytes, content_type="image/png")


@pytest.fixture
def video_file():
    return SimpleUploadedFile("clip.mp4", b"\x00\x00\x00\x18ftypmp42", content_type="video/mp4")


@pytest.fixture
def user(db):
    """Create a test user."""
    return get_user_model().objects.create_user(
        username="testuser",
        email="test@example.com",
        password="testpass123",
    )
