"""HTTP client for the remote blog storage API."""

import logging
from typing import Callable, Optional

import requests
from django.core.files import File

from .conf import editor_settings
from .storage import ApiResponse, StorageBackend

logger = logging.getLogger(__name__)


class BlogApiClient(StorageBackend):
    """
    StorageBackend over the blog REST API.

    The bearer token is handed in by the caller; this client never looks
    up credentials itself. A 401 answer is reported to on_unauthorized so
    the authentication layer can re-authenticate, and comes back as a
    failed ApiResponse like any other error.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ):
        self.base_url = (base_url or editor_settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or editor_settings.API_TIMEOUT
        self.on_unauthorized = on_unauthorized
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, **kwargs) -> ApiResponse:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            return ApiResponse.fail(f"Could not reach the server: {e}")

        if response.status_code == 401:
            logger.info(f"{method} {url} was rejected as unauthorized")
            if self.on_unauthorized is not None:
                self.on_unauthorized()
            return ApiResponse.fail("Authentication required")

        try:
            body = response.json()
        except ValueError:
            logger.warning(f"{method} {url} returned non-JSON status {response.status_code}")
            return ApiResponse.fail(f"Server error ({response.status_code})")

        result = ApiResponse.from_json(body)
        if not response.ok and result.success:
            result = ApiResponse.fail(result.error or f"Server error ({response.status_code})")
        return result

    @staticmethod
    def _form(payload: dict):
        """Split a content payload into form fields and files."""
        data = {}
        files = {}
        for key, value in payload.items():
            if key == "featured_image":
                # Only newly chosen files are sent; references stay server-side
                if isinstance(value, File):
                    value.seek(0)
                    files[key] = (value.name, value, getattr(value, "content_type", None))
                continue
            if value is not None:
                data[key] = value
        return data, files

    def upload_media(self, file, progress=None) -> ApiResponse:
        file.seek(0)
        files = {"image": (file.name, file, getattr(file, "content_type", None))}
        result = self._request("POST", "/blogs/upload-image", files=files)
        if result.success and progress is not None:
            progress(file.size, file.size)
        return result

    def create_content(self, payload: dict) -> ApiResponse:
        data, files = self._form(payload)
        return self._request("POST", "/blogs", data=data, files=files or None)

    def update_content(self, content_id, payload: dict) -> ApiResponse:
        data, files = self._form(payload)
        return self._request("PUT", f"/blogs/{content_id}", data=data, files=files or None)

    def get_content_by_id(self, content_id) -> ApiResponse:
        return self._request("GET", f"/blogs/{content_id}")
