"""Prompt assembly helpers used by the generation gateway.

This module is intentionally narrow: it only builds system instructions, request
contents, and the image prompt from already routed inputs. Mode selection,
transport, and error handling happen outside this module.

Design constraints:
    - Deterministic construction for identical inputs (time-aware helpers take
      the clock value as an argument).
    - Fixed ordering of request contents: prior history first, new text last.
    - No hidden side effects (no I/O, no global state mutation).

Prompt safety model:
    - Safety is instruction-led, not parser-enforced.
    - User text is interpolated as raw strings.
"""

from datetime import datetime
from typing import Iterable

from brainora.memory.models import Message, ROLE_ASSISTANT


# =========================================================
# PER-MODE SYSTEM INSTRUCTIONS
# =========================================================
# Streaming chat passes the declared mode through as a generation style.
# Unknown modes fall back to the default instruction.

MODE_INSTRUCTIONS = {
    "default": "You are Brainora. Answer efficiently. No repetitive introductions.",
    "knowledge": "Deep analytical logic. Provide dense, smart information.",
    "search": "Fact-check precision core. Focus purely on accurate data.",
    "creative": "Imaginative synthesis core. Be vivid but avoid AI cliches.",
    "live": "Live Pulse Intelligence. Integrate current events naturally.",
}


# =========================================================
# GROUNDED CHAT INSTRUCTION
# =========================================================
# Placeholders: `{today}` (locale date) and `{time_of_day}`.

GROUNDING_INSTRUCTION_TEMPLATE = (
    "You are Brainora, a highly efficient and humble AI assistant.\n"
    "STRICT PERSONALITY RULES:\n"
    "1. NEVER repeat your name or \"I am an AI\" in every response. Be natural.\n"
    "2. Avoid over-confident or repetitive boilerplate phrases.\n"
    "3. Deliver intelligence directly. If a question is short, be concise.\n"
    "4. Adapt your tone to be helpful, professional, and understated.\n"
    "5. Use Google Search only when precision is needed for today's date ({today}).\n"
    "Context: {time_of_day}."
)


IMAGE_PROMPT_TEMPLATE = (
    "IMAGE_GENERATION_TASK: Create a professional, detailed, and high-resolution "
    "1K image of: {prompt}. Ensure no distortion and a clean artistic finish. "
    "Output only the image data."
)


def time_of_day(now: datetime) -> str:
    """Map a clock value onto the coarse day-part label used in instructions."""
    hour = now.hour
    if hour < 12:
        return "Morning"
    if hour < 17:
        return "Afternoon"
    if hour < 21:
        return "Evening"
    return "Night"


def build_mode_instruction(mode: str) -> str:
    """Return the streaming-chat system instruction for a declared mode."""
    return MODE_INSTRUCTIONS.get(mode, MODE_INSTRUCTIONS["default"])


def build_grounding_instruction(now: datetime) -> str:
    """Build the grounded-chat system instruction for the given clock value."""
    return GROUNDING_INSTRUCTION_TEMPLATE.format(
        today=now.strftime("%x"),
        time_of_day=time_of_day(now),
    )


def build_image_prompt(prompt: str) -> str:
    """Wrap raw user text in a directive image-generation task."""
    return IMAGE_PROMPT_TEMPLATE.format(prompt=prompt)


def build_contents(history: Iterable[Message], new_text: str) -> list[dict]:
    """Convert prior messages plus the new user text into Gemini `contents`.

    Args:
        history: Prior conversation turns in display order.
        new_text: The text being submitted now.

    Returns:
        List of `{"role", "parts"}` entries ending with the new user turn.

    Edge cases:
        - `assistant` maps to Gemini's `model` role; every other role is `user`.
        - Image results are sent as their caption text only.
        - Turns with empty content are skipped.
    """
    contents = []
    for message in history:
        if not message.content:
            continue
        role = "model" if message.role == ROLE_ASSISTANT else "user"
        contents.append({"role": role, "parts": [{"text": message.content}]})

    contents.append({"role": "user", "parts": [{"text": new_text}]})
    return contents
