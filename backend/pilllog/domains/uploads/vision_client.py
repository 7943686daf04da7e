"""
Google Cloud Vision OCR Client

Recognizes text in prescription photos through the Vision API
`images:annotate` REST endpoint (TEXT_DETECTION).

API Documentation: https://cloud.google.com/vision/docs/ocr
Authenticated with an API key.
"""
import base64
import logging

import httpx

from pilllog.core.config import settings

logger = logging.getLogger(__name__)

LANGUAGE_HINTS = ["ko", "en"]


class RecognitionError(Exception):
    """Raised when OCR fails or finds no text in the image."""
    pass


class VisionClient:
    """
    Client for Google Cloud Vision text detection.

    Usage:
        client = VisionClient(api_key="...")
        text = client.recognize(image_bytes)
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = settings.GOOGLE_VISION_API_URL,
        timeout: float = settings.OCR_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, transport=self._transport)
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "VisionClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def recognize(self, image_bytes: bytes) -> str:
        """
        Recognize all text in an image.

        Args:
            image_bytes: Encoded image (JPEG, PNG, ...)

        Returns:
            The full recognized text, lines separated by newlines

        Raises:
            RecognitionError: If the API is not configured, the call fails,
                the API reports an error, or no text was detected
        """
        if not self.api_key:
            raise RecognitionError("GOOGLE_VISION_API_KEY is not set")

        payload = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                    "features": [{"type": "TEXT_DETECTION"}],
                    "imageContext": {"languageHints": LANGUAGE_HINTS},
                }
            ]
        }

        try:
            client = self._get_client()
            response = client.post(self.api_url, params={"key": self.api_key}, json=payload)
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"Vision API HTTP error: {e}")
            raise RecognitionError(f"Vision API returned status {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Vision API request error: {e}")
            raise RecognitionError(f"Failed to connect to Vision API: {e}") from e
        except ValueError as e:
            logger.error(f"Vision API returned a non-JSON body: {e}")
            raise RecognitionError("Vision API returned an invalid response") from e

        return self._parse_response(data)

    def _parse_response(self, data: dict) -> str:
        """Pull the full-page text out of an annotate response."""
        responses = data.get("responses") or []
        if not responses:
            raise RecognitionError("No text detected in image")

        result = responses[0]
        if "error" in result:
            message = result["error"].get("message", "unknown error")
            raise RecognitionError(f"Vision API error: {message}")

        # The first annotation holds the entire detected text
        annotations = result.get("textAnnotations") or []
        if not annotations:
            raise RecognitionError("No text detected in image")

        return annotations[0].get("description") or ""


# Singleton instance for reuse
_default_client: VisionClient | None = None


def get_vision_client() -> VisionClient:
    """Get the default Vision client instance."""
    global _default_client
    if _default_client is None:
        if not settings.GOOGLE_VISION_API_KEY:
            logger.warning("GOOGLE_VISION_API_KEY not found. Prescription OCR will fail.")
        _default_client = VisionClient(api_key=settings.GOOGLE_VISION_API_KEY)
    return _default_client
