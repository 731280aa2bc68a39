"""Lightweight text classification used by mode dispatch.

Module scope:
- Visual-generation intent detection (`intent_router`).

Determinism profile:
- Pure rule logic; no model-backed scoring.
"""
