"""Image service used by the gateway's image-synthesis operation.

Role in pipeline:
    - Receives the raw user prompt from the dispatcher (through the gateway).
    - Wraps it in the directive image-task prompt.
    - Fixes the output framing (square aspect ratio).
    - Returns the image reference, or `None` when none was produced.

Error handling strategy:
    - Exceptions from the provider client are intentionally propagated; the
      dispatcher distinguishes "raised" from "returned None".
"""

from brainora.image.client import send_image_request
from brainora.llm.provider_config import GEMINI_IMAGE_MODEL, IMAGE_ASPECT_RATIO
from brainora.prompting.prompt_builder import build_image_prompt


def build_image_payload(prompt: str, aspect_ratio: str = IMAGE_ASPECT_RATIO) -> dict:
    """Build the image-model request body for a raw user prompt."""
    return {
        "contents": [
            {"role": "user", "parts": [{"text": build_image_prompt(prompt)}]}
        ],
        "generationConfig": {
            "imageConfig": {"aspectRatio": aspect_ratio},
        },
    }


def generate_image(prompt: str, model: str = GEMINI_IMAGE_MODEL) -> str | None:
    """Generate an image for `prompt`.

    Returns:
        `data:` URL for the generated image, or `None` when the provider
        answered without image data.
    """
    return send_image_request(build_image_payload(prompt), model=model)
