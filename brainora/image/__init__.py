"""Image generation adapter package.

Scope:
    Provides the text-to-image client and the small service used by the
    gateway's image-synthesis operation.

Non-goals:
    - No image decoding or re-encoding; inline Base64 is forwarded as a `data:` URL.
    - No temporary-file creation or download handling.
"""
