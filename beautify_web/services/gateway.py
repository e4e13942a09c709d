"""Generation Gateway: a narrow wrapper around the image generation API."""

import base64
import logging
from typing import Optional

import httpx

from ..config import settings
from ..exceptions import GatewayConfigurationError
from ..models.generation import (
    FailureKind,
    GenerationFailure,
    GenerationResult,
    GenerationSuccess,
)

logger = logging.getLogger(__name__)


def classify_error(raw: str) -> GenerationFailure:
    """Map a provider error text to a user facing failure."""
    lowered = raw.lower()
    if "403" in raw or "PERMISSION_DENIED" in raw or "API_KEY_SERVICE_BLOCKED" in raw:
        return GenerationFailure(
            message=(
                "API key does not have permission. Please enable the "
                "Generative Language API in Google Cloud Console."
            ),
            kind=FailureKind.PERMISSION_DENIED,
        )
    if "429" in raw or "rate limit" in lowered or "RESOURCE_EXHAUSTED" in raw:
        return GenerationFailure(
            message="Rate limit exceeded. Please try again later.",
            kind=FailureKind.RATE_LIMITED,
        )
    if "safety" in lowered:
        return GenerationFailure(
            message="Content was blocked by safety filters",
            kind=FailureKind.SAFETY_FILTERED,
        )
    return GenerationFailure(message=f"API error: {raw}", kind=FailureKind.UNKNOWN)


class GenerationGateway:
    """
    Calls the Gemini ``generateContent`` endpoint with one image and a prompt.

    Performs no retries; every failure is returned as a classified
    :class:`GenerationFailure`. Construction fails without an API key.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-3-pro-image-preview",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise GatewayConfigurationError(
                "BEAUTIFY_WEB_GEMINI_API_KEY environment variable is not set"
            )
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls) -> "GenerationGateway":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.gateway_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _build_payload(
        self,
        image: bytes,
        mime_type: str,
        prompt: str,
        aspect_ratio: Optional[str],
    ) -> dict:
        full_prompt = prompt
        if aspect_ratio:
            full_prompt = f"{prompt}\n\nOutput the image in {aspect_ratio} aspect ratio."
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {
                            "inlineData": {
                                "mimeType": mime_type,
                                "data": base64.b64encode(image).decode("ascii"),
                            }
                        },
                        {"text": full_prompt},
                    ],
                }
            ],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }

    async def generate(
        self,
        image: bytes,
        mime_type: str,
        prompt: str,
        aspect_ratio: Optional[str] = None,
    ) -> GenerationResult:
        """Generate one image from ``image`` and ``prompt``."""
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = self._build_payload(image, mime_type, prompt, aspect_ratio)

        try:
            logger.debug(f"Calling generation API with model {self.model}")
            response = await self._client.post(
                url,
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )
            if response.status_code >= 400:
                raw = _describe_error_response(response)
                logger.warning(f"Generation API returned {response.status_code}: {raw}")
                return classify_error(raw)
            body = response.json()
        except httpx.HTTPError as e:
            raw = f"{type(e).__name__}: {e}"
            logger.warning(f"Generation API request failed: {raw}")
            return classify_error(raw)
        except ValueError as e:
            logger.warning(f"Generation API returned malformed JSON: {e}")
            return GenerationFailure(
                message="Malformed response from generation API",
                kind=FailureKind.UNKNOWN,
            )

        return _parse_response(body)


def _describe_error_response(response: httpx.Response) -> str:
    """Flatten an error response into ``"<code> <STATUS> <message>"``."""
    try:
        body = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return f"{response.status_code} {response.text[:500]}"
    parts = [str(response.status_code)]
    if error.get("status"):
        parts.append(error["status"])
    if error.get("message"):
        parts.append(error["message"])
    return " ".join(parts)


def _parse_response(body: dict) -> GenerationResult:
    if not isinstance(body, dict):
        return GenerationFailure(
            message="Malformed response from generation API",
            kind=FailureKind.UNKNOWN,
        )
    candidates = body.get("candidates") or []
    if not candidates:
        block_reason = (body.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            return GenerationFailure(
                message="Content was blocked by safety filters",
                kind=FailureKind.SAFETY_FILTERED,
            )
        return GenerationFailure(message="No response generated", kind=FailureKind.NO_RESPONSE)

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    for part in parts:
        inline = part.get("inlineData") or {}
        if inline.get("data") and inline.get("mimeType"):
            return GenerationSuccess(
                image=base64.b64decode(inline["data"]),
                mime_type=inline["mimeType"],
            )

    if candidate.get("finishReason") == "SAFETY":
        return GenerationFailure(
            message="Content was blocked by safety filters",
            kind=FailureKind.SAFETY_FILTERED,
        )
    if not parts:
        return GenerationFailure(message="No content in response", kind=FailureKind.NO_RESPONSE)
    return GenerationFailure(message="No image found in response", kind=FailureKind.NO_RESPONSE)
