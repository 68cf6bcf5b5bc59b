"""
Error taxonomy for django-blog-editor.

None of these are fatal to an editing session; EditorSession turns them
into user-visible notifications.
"""


class EditorError(Exception):
    """Base class for every recoverable editor error."""

    message = "Editor error"

    def __init__(self, message=None):
        self.message = message or self.message
        super().__init__(self.message)


class ParseError(EditorError):
    """Stored markup is not well-formed."""

    message = "Content could not be parsed"

    def __init__(self, message=None, position=None):
        self.position = position
        if message and position:
            message = f"{message} at line {position[0]}, column {position[1]}"
        super().__init__(message)


class MediaError(EditorError):
    """A candidate file was rejected before any upload started."""


class InvalidMediaType(MediaError):
    message = "Unsupported media type"


class MediaTooLarge(MediaError):
    message = "File is too large"


class UploadFailed(EditorError):
    """The storage collaborator rejected or lost an upload."""

    message = "Upload failed"


class UploadBusy(EditorError):
    """Another upload is already in progress."""

    message = "Another upload is in progress, please wait for it to finish"


class UnsupportedDrop(EditorError):
    """A dropped file is neither an image nor a video."""

    message = "Only image and video files can be dropped here"
