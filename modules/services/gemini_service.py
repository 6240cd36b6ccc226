"""Face morphing through the Gemini image generation API."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from google import genai
from google.genai import types

from config.settings import AppConfig
from modules.utils.image_utils import (
    DEFAULT_MIME_TYPE,
    decode_payload,
    encode_data_uri,
    sniff_mime_type,
    split_data_uri,
)

logger = logging.getLogger(__name__)

MORPH_INSTRUCTION_TEMPLATE = (
    "Please morph or alter this face according to the following description: {prompt}. "
    "Keep the basic identity and composition but apply the specific transformations requested."
)
NO_CONTENT_MESSAGE = "No response generated from the AI model."
TEXT_ONLY_MESSAGE = "The model did not return an image. It might have only returned text: {text}"
NO_TEXT_FALLBACK = "No text returned either."
PROVIDER_FAILURE_MESSAGE = "An error occurred during the morphing process."
UNDECODABLE_IMAGE_MESSAGE = "The model returned image data that could not be decoded."


class MorphRequestError(RuntimeError):
    """Raised when a morph request fails at the provider or yields no image."""


class GeminiMorphService:
    """Facade around a single Gemini ``generate_content`` call."""

    def __init__(self, config: AppConfig, client: Optional[Any] = None) -> None:
        self.config = config
        self._client = client

    @property
    def model_id(self) -> str:
        return self.config.model_id

    def _get_client(self) -> Any:
        """Lazily create the Gemini client from the configured API key."""
        if self._client is None:
            self._client = genai.Client(api_key=self.config.gemini_api_key)
        return self._client

    def build_contents(self, image: str, prompt: str) -> types.Content:
        """Return the user turn: inline image bytes followed by the instruction."""
        mime_type, _ = split_data_uri(image)
        try:
            image_bytes = decode_payload(image)
        except ValueError as exc:
            raise MorphRequestError(str(exc)) from exc

        return types.Content(
            role="user",
            parts=[
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type or DEFAULT_MIME_TYPE),
                types.Part.from_text(text=MORPH_INSTRUCTION_TEMPLATE.format(prompt=prompt)),
            ],
        )

    def morph(self, image: str, prompt: str, seed: int) -> str:
        """Morph ``image`` according to ``prompt`` and return the result as a data URI."""
        contents = self.build_contents(image, prompt)
        client = self._get_client()

        try:
            response = client.models.generate_content(
                model=self.model_id,
                contents=contents,
                config=types.GenerateContentConfig(seed=seed),
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("Gemini morph request failed: %s", exc)
            raise MorphRequestError(str(exc) or PROVIDER_FAILURE_MESSAGE) from exc

        parts = _first_candidate_parts(response)
        if not parts:
            logger.error("Gemini morph response carried no content parts")
            raise MorphRequestError(NO_CONTENT_MESSAGE)

        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data is not None else None
            if not data:
                continue
            raw = _raw_bytes(data)
            if sniff_mime_type(raw) is None:
                logger.error("Gemini morph response carried an undecodable image (%d bytes)", len(raw))
                raise MorphRequestError(UNDECODABLE_IMAGE_MESSAGE)
            mime_type = getattr(inline_data, "mime_type", None) or DEFAULT_MIME_TYPE
            logger.info("Gemini morph succeeded (model=%s, seed=%s)", self.model_id, seed)
            return _to_data_uri(data, mime_type)

        text = _join_text(parts)
        logger.error("Gemini morph response contained no image; text=%r", text[:200])
        raise MorphRequestError(TEXT_ONLY_MESSAGE.format(text=text or NO_TEXT_FALLBACK))


def _first_candidate_parts(response: Any) -> list[Any]:
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    if content is None:
        return []
    return list(getattr(content, "parts", None) or [])


def _join_text(parts: Iterable[Any]) -> str:
    texts = [part.text for part in parts if getattr(part, "text", None)]
    return "".join(texts).strip()


def _raw_bytes(data: Any) -> bytes:
    # The SDK hands back raw bytes; REST-shaped fakes may already be base64 text.
    if isinstance(data, str):
        try:
            return decode_payload(data)
        except ValueError as exc:
            raise MorphRequestError(UNDECODABLE_IMAGE_MESSAGE) from exc
    return bytes(data)


def _to_data_uri(data: Any, mime_type: str) -> str:
    if isinstance(data, str):
        return encode_data_uri(data, mime_type)
    return encode_data_uri(bytes(data), mime_type)
