"""
Pixdrop Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for every failure a request can hit.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching HTTP status.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    PixdropError (base)
    ├── ValidationError            → 400 Bad Request (bad base64, too large)
    │   └── ImageDecodeError       → 400 Bad Request (not an image / corrupt)
    ├── UnauthorizedError          → 401 Unauthorized (API key mismatch)
    ├── NotFoundError              → 404 Not Found (image or delete token)
    ├── FileStorageError           → 500 Internal Server Error
    └── ImageProcessingError       → 500 Internal Server Error (resize/encode)

Every workflow step raises exactly one of these or returns its result;
nothing in the services swallows a failure.
"""

from typing import Any, Dict, Optional


class PixdropError(Exception):
    """
    Base exception for all Pixdrop application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PixdropError):
    """
    Raised when client input fails validation.

    When:    Malformed base64, empty or oversized payload.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ImageDecodeError(ValidationError):
    """
    Raised when the uploaded bytes are not a decodable image.

    What:    Pillow could not identify the format, or the data is truncated/corrupt,
             or the image exceeds the decompression-bomb pixel ceiling.
    HTTP:    400 Bad Request (the client sent something that is not an image)
    """

    def __init__(
        self,
        message: str = "The uploaded data is not a supported image",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field="data", context=context)


class UnauthorizedError(PixdropError):
    """
    Raised when the supplied API key does not match the configured secret.

    HTTP:    401 Unauthorized
    Logged:  INFO with the caller's address (by the exception handler).
    """

    def __init__(
        self,
        message: str = "wrong api key",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PixdropError):
    """
    Raised when a requested resource does not exist.

    When:    GET /image/{id} for a missing image, or DELETE with a delete token
             that was never issued, was already used, or whose image is gone.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(PixdropError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory missing, I/O error,
             or an entry that should be fresh already exists.
    HTTP:    500 Internal Server Error

    The message returned to the client never contains file system paths;
    paths and the OS error go into `context` for the server log.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ImageProcessingError(PixdropError):
    """
    Raised when a decoded image cannot be resized, converted or re-encoded.

    HTTP:    500 Internal Server Error (the input decoded fine; the failure is ours)
    """

    def __init__(
        self,
        message: str = "Failed to process the uploaded image",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
