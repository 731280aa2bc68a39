"""Gemini REST transport for text, grounded, and image requests.

Architectural role:
    Executes HTTP requests against the Gemini `generateContent` family of
    endpoints and normalizes response materialization for streaming and
    non-streaming paths. Callers (`service.GeminiGateway`, `image.service`) build
    the payloads; this module only moves bytes and parses envelopes.

Model invocation flow:
    `GeminiGateway` -> `stream_generate(model, payload)` (SSE deltas) or
    `generate(model, payload)` (one JSON envelope) -> parsed text / parts.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted once with
    `REQUEST_TIMEOUT`.

Failure handling model:
    Transport and HTTP failures are raised as `ProviderError` carrying a
    sanitized, provider-labelled message (status code only, never the body).
    Malformed SSE lines are skipped.
"""

import json
import logging
from typing import Any, Iterator

import requests

from brainora.llm.provider_config import (
    DEBUG,
    GEMINI_BASE_URL,
    GEMINI_KEY_FILE,
    PROVIDER,
    REQUEST_TIMEOUT,
    load_key,
)


logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """Raised when the generation provider cannot be reached or rejects a call."""


def _build_sanitized_http_error(provider_name: str, err: requests.exceptions.RequestException) -> str:
    """Build provider-labeled HTTP error text without exposing raw internals.

    Args:
        provider_name: Active provider label.
        err: Request exception instance.

    Returns:
        Sanitized error string with optional status code.
    """
    status_code = None
    if getattr(err, "response", None) is not None:
        status_code = getattr(err.response, "status_code", None)

    label = str(provider_name or "provider").upper()
    if status_code:
        return f"{label} HTTP ERROR ({status_code})"
    return f"{label} HTTP ERROR"


def _headers() -> dict[str, str]:
    api_key = load_key(GEMINI_KEY_FILE)
    if not api_key:
        raise ProviderError(f"{PROVIDER.upper()} KEY NOT FOUND")

    return {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }


def _endpoint(model: str, method: str) -> str:
    return f"{GEMINI_BASE_URL}/{model}:{method}"


def extract_parts(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the content parts of the first candidate, or `[]`."""
    candidates = data.get("candidates") or []
    if not candidates:
        return []
    content = candidates[0].get("content") or {}
    return [p for p in content.get("parts") or [] if isinstance(p, dict)]


def extract_text(data: dict[str, Any]) -> str:
    """Concatenate the visible text parts of the first candidate.

    Edge cases:
        - Thought-summary parts (`thought: true`) are excluded.
        - Missing candidates/parts produce `""`.
    """
    return "".join(
        str(part.get("text", ""))
        for part in extract_parts(data)
        if part.get("text") and not part.get("thought")
    )


def generate(model: str, payload: dict) -> dict[str, Any]:
    """Send one non-streaming `generateContent` request.

    Args:
        model: Gemini model identifier.
        payload: Request body (`contents`, `systemInstruction`, `tools`, ...).

    Returns:
        Parsed JSON response envelope.

    Raises:
        ProviderError: Missing key, transport failure, non-2xx status, or a
            non-JSON body.
    """
    headers = _headers()

    if DEBUG:
        logger.debug("gemini generate model=%s payload=%s", model, json.dumps(payload)[:2000])

    try:
        response = requests.post(
            _endpoint(model, "generateContent"),
            headers=headers,
            json=payload,
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as err:
        raise ProviderError(_build_sanitized_http_error(PROVIDER, err)) from err
    except ValueError as err:
        raise ProviderError(f"{PROVIDER.upper()} INVALID RESPONSE") from err


def stream_generate(model: str, payload: dict) -> Iterator[str]:
    """Stream text deltas from `streamGenerateContent` (SSE framing).

    The HTTP request is issued lazily on first iteration, so the returned
    generator can be driven chunk-by-chunk from a worker thread.

    Yields:
        Non-empty text deltas in delivery order.

    Raises:
        ProviderError: On missing key or any transport/HTTP failure, including
            failures after some deltas were already yielded.
    """
    headers = _headers()

    try:
        with requests.post(
            _endpoint(model, "streamGenerateContent"),
            params={"alt": "sse"},
            headers=headers,
            json=payload,
            stream=True,
            timeout=REQUEST_TIMEOUT,
        ) as response:

            response.raise_for_status()
            response.encoding = "utf-8"

            for line in response.iter_lines(decode_unicode=True):

                if not line:
                    continue

                if line.startswith("data: "):
                    line = line[6:]

                if line.strip() == "[DONE]":
                    break

                try:
                    data = json.loads(line)
                except Exception:
                    continue

                if not isinstance(data, dict):
                    continue

                delta = extract_text(data)
                if delta:
                    yield delta

    except requests.exceptions.RequestException as err:
        raise ProviderError(_build_sanitized_http_error(PROVIDER, err)) from err
