"""
Custom exceptions for the sticker slicing toolkit.

All application-specific exceptions inherit from StickerKitError.

Insufficient-signal and no-op outcomes of the removal tools are not
exceptions; they are returned as OperationResult values.
"""

from __future__ import annotations

from typing import Optional, Any


class StickerKitError(Exception):
    """
    Root of the stickerkit error hierarchy.

    ``details`` carries structured context (offending field, path, ...)
    and is appended to the string form so log lines stay self-contained.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} [{context}]"


class ConfigurationError(StickerKitError):
    """An environment setting is out of range."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details)


class ValidationError(StickerKitError):
    """
    Input validation failed.

    Examples:
        - Out of range value
        - Wrongly shaped pixel buffer
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        expected: Optional[str] = None
    ):
        details = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            details["field_value"] = str(field_value)[:100]
        if expected:
            details["expected"] = expected
        super().__init__(message, details=details)


class InvalidGeometryError(ValidationError):
    """
    Slice geometry cannot produce non-degenerate cells.

    Examples:
        - cols or rows <= 0
        - top + bottom trim >= 0.9
        - grid lines not strictly increasing inside (0, 1)
    """


class CoordinateError(ValidationError, IndexError):
    """A pixel coordinate lies outside the bitmap."""

    def __init__(self, x: Any, y: Any, width: int, height: int):
        super().__init__(
            f"Pixel ({x}, {y}) is outside the {width}x{height} bitmap",
            field_name="coordinate",
            field_value=(x, y),
            expected=f"0 <= x < {width}, 0 <= y < {height}",
        )


class ImageLoadError(StickerKitError):
    """
    Failed to decode an image file.

    Examples:
        - Missing file
        - Unsupported or corrupted image data
    """

    def __init__(self, message: str, image_path: Optional[str] = None):
        details = {"image_path": image_path} if image_path else None
        super().__init__(message, details=details)


class ExportError(StickerKitError):
    """
    Failed to write the sticker set.

    Examples:
        - Output directory not writable
        - PNG encoding failed
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        operation: Optional[str] = None  # "encode" or "write"
    ):
        details = {}
        if file_path:
            details["file_path"] = file_path
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details)
