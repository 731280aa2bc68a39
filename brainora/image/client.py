"""Gemini image-model HTTP client.

Processing flow:
    1. Submit a `generateContent` payload to the configured image model through
       the shared Gemini transport (`brainora.llm.client.generate`).
    2. Scan the first candidate's parts for inline image data.
    3. Return it as a `data:` URL, or `None` when the model produced no image.

Base64 handling:
    - Inline data is already Base64 on the wire; it is forwarded untouched
      into the `data:` URL and never decoded here.

Error handling strategy:
    - Transport failures raise `ProviderError` for upstream handling.
    - "No image in the response" is not an error and yields `None`.
"""

import logging
from typing import Any

from brainora.llm.client import extract_parts, generate
from brainora.llm.provider_config import GEMINI_IMAGE_MODEL


logger = logging.getLogger(__name__)


def extract_image_url(data: dict[str, Any]) -> str | None:
    """Return the first inline image part as a `data:` URL.

    Accepts both the REST casing (`inlineData`/`mimeType`) and the snake_case
    casing some proxies emit.
    """
    for part in extract_parts(data):
        inline = part.get("inlineData") or part.get("inline_data")
        if not isinstance(inline, dict):
            continue
        payload = inline.get("data")
        if not payload:
            continue
        mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
        return f"data:{mime_type};base64,{payload}"
    return None


def send_image_request(payload: dict, model: str = GEMINI_IMAGE_MODEL) -> str | None:
    """Send an image-generation request and return the image reference.

    Args:
        payload: Gemini request body (`contents`, `generationConfig`).
        model: Image-capable model identifier.

    Returns:
        `data:` URL of the first generated image, or `None`.

    Raises:
        ProviderError: Propagated from the transport layer.
    """
    data = generate(model, payload)
    image_url = extract_image_url(data)
    if image_url is None:
        logger.warning("No inlineData found in image response, returning None.")
    return image_url
