"""
Export error taxonomy.

Every error carries the message shown to the user; `status_code` is the
HTTP status the routes answer with.
"""


class ExportError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ExportError):
    status_code = 404


class ConfigurationError(ExportError):
    """Missing or unusable template, empty carousel. Never retried."""
    status_code = 400


class QuotaExceededError(ExportError):
    status_code = 429


class TransientRenderError(ExportError):
    """The rendering surface crashed; the whole batch may be retried."""
    status_code = 503


class UploadError(ExportError):
    status_code = 500


TRANSIENT_EXHAUSTED_MESSAGE = (
    "The renderer crashed while exporting. Please try again, or download the slides one by one."
)
