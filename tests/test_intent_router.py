#!/usr/bin/env python3
"""
Brainora Image Intent Tests

Tests for:
- Short-input gate
- Visual noun + action verb requirement
- Transliterated keywords
- Determinism
"""

import unittest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from brainora.nlp.intent_router import has_image_intent


class TestHasImageIntent(unittest.TestCase):
    """Keyword heuristic for visual-generation requests."""

    def test_draw_request(self):
        self.assertTrue(has_image_intent("draw a cat"))

    def test_noun_and_verb_required(self):
        self.assertTrue(has_image_intent("Generate a picture of the sea"))
        self.assertFalse(has_image_intent("what is a picture element"))
        self.assertFalse(has_image_intent("make me a sandwich"))

    def test_case_insensitive(self):
        self.assertTrue(has_image_intent("CREATE AN IMAGE OF A DOG"))

    def test_transliterated_keywords(self):
        self.assertTrue(has_image_intent("ek tasveer banao"))

    def test_short_input_never_matches(self):
        """Trimmed input of three characters or fewer is never image intent."""
        for text in ("", "a", "art", "dra", "   art   ", "\tart\n"):
            self.assertFalse(has_image_intent(text), text)

    def test_four_characters_can_match(self):
        self.assertTrue(has_image_intent("draw"))
        self.assertTrue(has_image_intent("  draw  "))

    def test_substring_matching(self):
        """Keywords match inside longer words."""
        self.assertTrue(has_image_intent("start the showcase"))

    def test_deterministic(self):
        text = "please make a drawing of a house"
        results = {has_image_intent(text) for _ in range(5)}
        self.assertEqual(results, {True})


if __name__ == "__main__":
    unittest.main()
