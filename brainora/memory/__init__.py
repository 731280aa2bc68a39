"""Conversation persistence package.

Architectural role:
    Groups the data contracts and the durable session list:
    - `models`: `Message`, `Session`, `Citation`, `User`.
    - `session_store`: ordered sessions plus user record, JSON snapshots on disk.
"""
