"""Typed export errors, rendered by the API as JSON error bodies."""

from typing import Optional


class ExportError(Exception):
    status_code = 500
    error_type = "ExportError"

    def __init__(self, message: str, field: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.detail = detail or message

    def to_dict(self):
        details = [{"field": self.field, "message": self.detail}] if self.field else []
        return {
            "success": False,
            "status_code": self.status_code,
            "message": self.message,
            "error": {"type": self.error_type, "details": details},
        }


class InvalidInput(ExportError):
    status_code = 400
    error_type = "InvalidInput"


class NotFound(ExportError):
    status_code = 404
    error_type = "NotFound"


class ImageProcessingError(ExportError):
    error_type = "ImageProcessingError"


class ContentProcessingError(ExportError):
    error_type = "ContentProcessingError"


class PDFRenderingError(ExportError):
    error_type = "PDFRenderingError"


class MalformedTokenStream(ValueError):
    """Raised when the parser's token stream does not have the expected shape."""
