"""Generation gateway: the boundary between the core and the provider.

Architectural role:
    Defines `ProviderGateway`, the three-operation contract the core consumes
    (streamed chat, grounded chat, image synthesis), and `GeminiGateway`, its
    concrete implementation over the Gemini REST transport in `client`.

Model call flow:
    history + new text + mode -> payload construction (`prompt_builder`) ->
    `client.stream_generate` / `client.generate` / `image.service` -> text
    fragments, `GroundedAnswer`, or image reference.

Concurrency:
    The transport is blocking (`requests`). Every call is moved off the event
    loop with `asyncio.to_thread`; streamed chunks are pulled one at a time so
    the consumer suspends once per fragment and control only yields at this
    boundary.

Failure scenarios:
    Transport failures surface as `ProviderError`. An image response without
    image data returns `None` (not an error).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Callable, Protocol, Sequence

from brainora.image.service import generate_image
from brainora.llm.client import extract_text, generate, stream_generate
from brainora.llm.provider_config import (
    GEMINI_FLASH_MODEL,
    GEMINI_GROUNDING_MODEL,
    GEMINI_IMAGE_MODEL,
    KNOWLEDGE_THINKING_BUDGET,
    MODE_MODELS,
    SEARCH_TOOL_MODES,
    TEMPERATURE,
)
from brainora.memory.models import Citation, Message
from brainora.prompting.prompt_builder import (
    build_contents,
    build_grounding_instruction,
    build_mode_instruction,
)


logger = logging.getLogger(__name__)

EMPTY_GROUNDED_ANSWER = (
    "I processed your request but couldn't find a specific text answer. "
    "Please try again."
)

_STREAM_DONE = object()


@dataclass(frozen=True)
class GroundedAnswer:
    """Grounded-chat result: answer text plus citations in provider order."""

    text: str
    citations: tuple[Citation, ...] = field(default_factory=tuple)


class ProviderGateway(Protocol):
    """Operations the orchestration core requires from a generation provider."""

    def stream_chat(
        self,
        history: Sequence[Message],
        new_text: str,
        mode: str = "default",
    ) -> AsyncIterator[str]:
        """Yield text fragments in delivery order; may raise mid-stream."""
        ...

    async def chat_with_grounding(
        self,
        history: Sequence[Message],
        new_text: str,
    ) -> GroundedAnswer:
        """Return one grounded answer with its citations."""
        ...

    async def generate_image(self, prompt: str) -> str | None:
        """Return an image reference, or `None` when no image was produced."""
        ...


def mode_value(mode) -> str:
    """Normalize a `Mode` member or plain string to its wire value."""
    return str(getattr(mode, "value", mode) or "default")


def extract_citations(data: dict) -> tuple[Citation, ...]:
    """Collect web grounding chunks that carry both a uri and a title.

    Order follows `groundingMetadata.groundingChunks` exactly.
    """
    candidates = data.get("candidates") or []
    if not candidates:
        return ()

    metadata = candidates[0].get("groundingMetadata") or {}
    citations = []
    for chunk in metadata.get("groundingChunks") or []:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if not isinstance(web, dict):
            continue
        uri = web.get("uri")
        title = web.get("title")
        if uri and title:
            citations.append(Citation(uri=str(uri), title=str(title)))
    return tuple(citations)


class GeminiGateway:
    """`ProviderGateway` backed by the Gemini REST API."""

    def __init__(
        self,
        mode_models: dict[str, str] | None = None,
        grounding_model: str = GEMINI_GROUNDING_MODEL,
        image_model: str = GEMINI_IMAGE_MODEL,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.mode_models = dict(mode_models or MODE_MODELS)
        self.grounding_model = grounding_model
        self.image_model = image_model
        self.clock = clock

    # -----------------------------------------------------
    # Payload construction
    # -----------------------------------------------------

    def model_for(self, mode) -> str:
        return self.mode_models.get(mode_value(mode), GEMINI_FLASH_MODEL)

    def build_stream_payload(self, history: Sequence[Message], new_text: str, mode) -> dict:
        """Build the streaming-chat request body for a declared mode.

        Parameter semantics:
            - `temperature=0.5` for every mode.
            - `live`/`search`: Google Search tool enabled.
            - `knowledge`: extended thinking budget.
        """
        mode = mode_value(mode)
        generation_config: dict = {"temperature": TEMPERATURE}
        if mode == "knowledge":
            generation_config["thinkingConfig"] = {"thinkingBudget": KNOWLEDGE_THINKING_BUDGET}

        payload = {
            "contents": build_contents(history, new_text),
            "systemInstruction": {"parts": [{"text": build_mode_instruction(mode)}]},
            "generationConfig": generation_config,
        }

        if mode in SEARCH_TOOL_MODES:
            payload["tools"] = [{"google_search": {}}]

        return payload

    def build_grounding_payload(self, history: Sequence[Message], new_text: str) -> dict:
        return {
            "contents": build_contents(history, new_text),
            "systemInstruction": {
                "parts": [{"text": build_grounding_instruction(self.clock())}]
            },
            "tools": [{"google_search": {}}],
        }

    # -----------------------------------------------------
    # Gateway operations
    # -----------------------------------------------------

    async def stream_chat(
        self,
        history: Sequence[Message],
        new_text: str,
        mode: str = "default",
    ) -> AsyncIterator[str]:
        """Stream fragments for one streaming-chat turn.

        Empty fragments are skipped. Transport failures propagate as
        `ProviderError`, possibly after some fragments were delivered.
        """
        model = self.model_for(mode)
        payload = self.build_stream_payload(history, new_text, mode)
        logger.info("stream_chat model=%s mode=%s history=%d", model, mode_value(mode), len(history))

        iterator = stream_generate(model, payload)
        try:
            while True:
                chunk = await asyncio.to_thread(next, iterator, _STREAM_DONE)
                if chunk is _STREAM_DONE:
                    break
                if chunk:
                    yield chunk
        finally:
            iterator.close()

    async def chat_with_grounding(
        self,
        history: Sequence[Message],
        new_text: str,
    ) -> GroundedAnswer:
        payload = self.build_grounding_payload(history, new_text)
        logger.info("chat_with_grounding model=%s history=%d", self.grounding_model, len(history))

        data = await asyncio.to_thread(generate, self.grounding_model, payload)

        text = extract_text(data) or EMPTY_GROUNDED_ANSWER
        return GroundedAnswer(text=text, citations=extract_citations(data))

    async def generate_image(self, prompt: str) -> str | None:
        logger.info("generate_image model=%s", self.image_model)
        return await asyncio.to_thread(generate_image, prompt, self.image_model)
