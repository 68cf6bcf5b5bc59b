"""
Pre-persistence transform.

Images pasted or dropped into the editor may arrive as data: URIs inside
the markup. Before a post is saved, each distinct inline payload is
decoded, uploaded, and every occurrence of it in the markup is replaced
by the hosted URL. Uploads run one after another in document order. A
payload that cannot be decoded or uploaded is logged and left in place;
it never aborts the save.
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import List
from urllib.parse import unquote_to_bytes

from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils.html import escape

from .document import deserialize
from .exceptions import ParseError, UploadFailed
from .ingestion import generate_filename
from .storage import Asset

logger = logging.getLogger(__name__)

DATA_IMAGE_PREFIX = "data:image"


@dataclass
class TransformResult:
    markup: str
    uploaded: List[Asset] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def complete(self):
        return not self.failed


def has_inline_images(markup):
    return DATA_IMAGE_PREFIX in (markup or "")


def inline_image_sources(markup):
    """Distinct data:image sources of image nodes, in document order."""
    sources = []
    for node in deserialize(markup).images():
        src = node.attr("src") or ""
        if src.startswith(DATA_IMAGE_PREFIX) and src not in sources:
            sources.append(src)
    return sources


def decode_data_uri(uri):
    """
    Decode a data: URI into an uploaded file named after the current time.

    Raises ValueError for anything that is not a decodable data URI.
    """
    header, separator, payload = uri.partition(",")
    if not separator or not header.startswith("data:"):
        raise ValueError("Not a data URI")
    params = header[len("data:"):].split(";")
    mime_type = params[0] or "text/plain"
    if "base64" in params[1:]:
        content = base64.b64decode("".join(payload.split()), validate=True)
    else:
        content = unquote_to_bytes(payload)
    if not content:
        raise ValueError("Empty data URI")
    return SimpleUploadedFile(generate_filename(mime_type), content, content_type=mime_type)


def inline_images_to_assets(markup, upload_file):
    """
    Replace inline image payloads in markup with uploaded asset URLs.

    upload_file(file) -> Asset is the coordinator's upload primitive and
    raises UploadFailed on error.
    """
    result = TransformResult(markup)
    if not has_inline_images(markup):
        return result

    try:
        sources = inline_image_sources(markup)
    except ParseError as exc:
        logger.warning("Leaving inline images in malformed markup: %s", exc)
        result.failed.append(exc.message)
        return result

    for src in sources:
        try:
            file = decode_data_uri(src)
        except ValueError as exc:
            logger.warning("Skipping undecodable inline image: %s", exc)
            result.failed.append(str(exc))
            continue

        try:
            asset = upload_file(file)
        except UploadFailed as exc:
            logger.warning("Failed to upload inline image %s: %s", file.name, exc)
            result.failed.append(exc.message)
            continue

        url = escape(asset.url)
        result.markup = result.markup.replace(escape(src), url).replace(src, url)
        result.uploaded.append(asset)

    return result
