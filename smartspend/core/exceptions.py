"""
Error types raised by the receipt ingestion pipeline and the expense store.
"""

from typing import Optional


class SmartSpendError(Exception):
    """Base class for every error raised by smartspend."""


class ExtractionError(SmartSpendError):
    """The OCR engine could not turn the image into text."""

    user_message = "Could not extract text from the image. Please try again with a clearer photo."


class ImageTooLargeError(ExtractionError):
    """The image exceeds the accepted upload size."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Image is {size} bytes; the limit is {limit} bytes")

    user_message = "Please select an image smaller than 10MB"


class ValidationError(SmartSpendError):
    """A draft or stored expense failed a field check."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class StoreError(SmartSpendError):
    """The persistence collaborator failed or is missing."""
