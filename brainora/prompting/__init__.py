"""Prompting package.

This package contains deterministic prompt-construction helpers used by the
generation gateway. It does not perform routing, persistence, or model
invocation.
"""
