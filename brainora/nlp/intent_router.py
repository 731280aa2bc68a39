"""Keyword heuristic that detects visual-generation intent in user text.

Intent classification logic:
- Lower-cases the input.
- Tests literal substring containment against two fixed keyword lists:
  visual nouns and action verbs, each including transliterated Hindi/Urdu
  equivalents (`tasveer`, `banao`, ...).
- Reports intent only when both lists match and the trimmed input is longer
  than `MIN_INTENT_LENGTH` characters.

Interaction with core:
- `brainora.core.dispatcher.ModeDispatcher` ORs this signal with the declared
  mode: `creative` always selects image synthesis, and any other mode is
  overridden toward image synthesis when this returns `True`.

Determinism:
- Pure and stateless. Identical input always yields the identical result.

Known limits:
- Substring matching (not tokenization) means `art` also matches `start` and
  `show` matches `showcase`. False positives are accepted as best-effort.
"""


# =========================================================
# KEYWORD LISTS
# =========================================================

IMAGE_KEYWORDS = [
    "image",
    "picture",
    "photo",
    "drawing",
    "art",
    "tasveer",
    "tasvir",
    "photo banao",
    "tasveer banao",
    "draw",
]

ACTION_KEYWORDS = [
    "create",
    "generate",
    "make",
    "draw",
    "banao",
    "show",
]

MIN_INTENT_LENGTH = 3


def has_image_intent(text: str) -> bool:
    """
    Return whether `text` asks for an image to be produced.

    Parsing rules:
    1. Blank or short input (trimmed length <= 3) is never image intent.
    2. At least one visual-noun keyword must occur as a substring.
    3. At least one action-verb keyword must occur as a substring.

    Edge cases:
    - `draw` belongs to both lists, so "draw" plus any extra character
      ("draw!") is enough on its own.
    """
    if not text:
        return False

    if len(text.strip()) <= MIN_INTENT_LENGTH:
        return False

    lowered = text.lower()

    has_visual = any(keyword in lowered for keyword in IMAGE_KEYWORDS)
    has_action = any(keyword in lowered for keyword in ACTION_KEYWORDS)

    return has_visual and has_action
