"""
OCR Service using OCR.space

DESIGN DECISION: OCR.space returns plain text only. Field extraction
(amount, category) happens locally in importers.receipt, so this service
does one thing: turn receipt image bytes into text.

This service handles:
1. Checking the upload (format whitelist, size limit)
2. Downscaling oversized photos with Pillow before upload
3. POSTing the base64 image as a data URI
4. Unwrapping ParsedResults and surfacing provider-side failures

CRITICAL: a response flagged IsErroredOnProcessing, or one with no text,
is an error. We never hand an empty string to the extractor as if the
receipt were blank.
"""

import asyncio
import base64
from io import BytesIO
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.config import get_settings
from expense_tracker.config.settings import AppSettings, OCRSettings


class OCRError(Exception):
    """Base exception for OCR errors."""
    pass


class ImageRejectedError(OCRError):
    """Upload is not an acceptable receipt image."""
    pass


class OCRRequestError(OCRError):
    """The OCR endpoint could not be reached or answered with an HTTP error."""
    pass


class OCRProcessingError(OCRError):
    """The provider processed the request but could not read the image."""
    pass


# Pillow format names mapped to the extensions used in settings
_FORMAT_EXTENSIONS = {
    "JPEG": "jpeg",
    "PNG": "png",
    "WEBP": "webp",
    "GIF": "gif",
    "BMP": "bmp",
    "TIFF": "tiff",
}


class OCRSpaceService:
    """
    Receipt text recognition over the OCR.space HTTP API.

    The HTTP call is blocking (requests) and is pushed to a worker thread
    so parse_image can be awaited from async flows.
    """

    def __init__(
        self,
        settings: Optional[OCRSettings] = None,
        app_settings: Optional[AppSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().ocr
        self._app_settings = app_settings or get_settings().app
        self._session = session or requests.Session()

    def prepare_image(self, image_bytes: bytes, mime_type: str) -> tuple[bytes, str]:
        """
        Validate an upload and shrink it if needed.

        Returns:
            (bytes to send, mime type of those bytes)

        Raises:
            ImageRejectedError: Empty, too large, unreadable or unsupported image
        """
        if not image_bytes:
            raise ImageRejectedError("Image is empty")
        if len(image_bytes) > self._app_settings.max_upload_size_bytes:
            raise ImageRejectedError(
                f"Image exceeds {self._app_settings.max_upload_size_mb} MB limit"
            )

        try:
            img = Image.open(BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageRejectedError(f"Could not read image: {e}")

        extension = _FORMAT_EXTENSIONS.get(img.format or "", (img.format or "").lower())
        supported = self._app_settings.supported_formats_list
        if extension not in supported and not (extension == "jpeg" and "jpg" in supported):
            raise ImageRejectedError(
                f"Unsupported image format: {img.format}. "
                f"Supported: {', '.join(supported)}"
            )

        max_dim = self._app_settings.max_receipt_dimension_px
        if max(img.size) <= max_dim:
            return image_bytes, mime_type

        # OCR.space's free tier caps uploads at 1 MB
        img.thumbnail((max_dim, max_dim))
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        buffer = BytesIO()
        img.save(buffer, format="JPEG", quality=85)
        return buffer.getvalue(), "image/jpeg"

    def _build_payload(self, image_bytes: bytes, mime_type: str) -> dict:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return {
            "apikey": self._settings.api_key,
            "language": self._settings.language,
            "base64Image": f"data:{mime_type};base64,{encoded}",
        }

    def _post(self, payload: dict) -> dict:
        """Blocking POST to the parse endpoint."""
        try:
            response = self._session.post(
                self._settings.endpoint,
                data=payload,
                timeout=self._settings.timeout_secs,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise OCRRequestError(f"OCR request failed: {e}")
        except ValueError as e:
            raise OCRRequestError(f"OCR response is not JSON: {e}")

    @staticmethod
    def parse_response(data: dict) -> str:
        """
        Pull the recognised text out of an OCR.space response.

        Raises:
            OCRProcessingError: Provider-side error or no text found
        """
        if data.get("IsErroredOnProcessing"):
            message = data.get("ErrorMessage") or "unknown error"
            if isinstance(message, list):
                message = "; ".join(str(m) for m in message)
            raise OCRProcessingError(f"OCR failed: {message}")

        texts = [
            result.get("ParsedText", "")
            for result in data.get("ParsedResults") or []
            if isinstance(result, dict)
        ]
        text = "\n".join(t for t in texts if t and t.strip())
        if not text.strip():
            raise OCRProcessingError("No text found in image")
        return text

    @retry(
        retry=retry_if_exception_type(OCRRequestError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def parse_image(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
        """
        Recognise the text on a receipt image.

        Args:
            image_bytes: Raw image bytes as uploaded
            mime_type: MIME type of the upload

        Returns:
            The recognised text

        Raises:
            ImageRejectedError: The image failed local checks
            OCRRequestError: Transport failure (after retries)
            OCRProcessingError: The provider couldn't read the image
        """
        prepared, prepared_mime = self.prepare_image(image_bytes, mime_type)
        payload = self._build_payload(prepared, prepared_mime)
        data = await asyncio.to_thread(self._post, payload)
        return self.parse_response(data)
