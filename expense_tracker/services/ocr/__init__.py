"""OCR services package."""

from expense_tracker.services.ocr.ocr_space_service import (
    ImageRejectedError,
    OCRError,
    OCRProcessingError,
    OCRRequestError,
    OCRSpaceService,
)

__all__ = [
    "ImageRejectedError",
    "OCRError",
    "OCRProcessingError",
    "OCRRequestError",
    "OCRSpaceService",
]
