"""Assemble streamed text fragments into one assistant message.

Protocol:
    1. Append an empty assistant placeholder to the live conversation before the
       first fragment arrives (lets renderers show a pending indicator).
    2. For each non-empty fragment, extend the running buffer and replace the
       placeholder slot with a message carrying the full buffer. Replacement,
       not delta-append: every observed value is a fully formed string.
    3. On exhaustion the buffer is the final content.
    4. On a mid-stream error the partial buffer is kept as the final content and
       the error is recorded on `self.error` for the caller to log.

Ordering:
    Fragments are applied strictly in arrival order with no batching, so the
    final content always equals the in-order concatenation of the fragments.

Input shapes:
    Async iterables (the gateway contract) and plain iterables are both
    accepted; a plain iterator is drained on the event loop thread.
"""

import inspect
from dataclasses import replace
from typing import AsyncIterable, Iterable

from brainora.core.state import ConversationState
from brainora.memory.models import Message


async def _iterate(fragments):
    """Yield from sync or async fragment sources uniformly."""
    if hasattr(fragments, "__aiter__"):
        async for fragment in fragments:
            yield fragment
    else:
        for fragment in fragments:
            yield fragment


class StreamAggregator:
    """One-shot consumer binding a fragment stream to a conversation slot."""

    def __init__(self, state: ConversationState, placeholder: Message | None = None) -> None:
        self.state = state
        self.placeholder = placeholder or Message.assistant("")
        self.buffer = ""
        self.fragment_count = 0
        self.error: Exception | None = None
        self._index: int | None = None

    @property
    def message(self) -> Message:
        """Current value of the assistant message being assembled."""
        return replace(self.placeholder, content=self.buffer)

    def _apply(self, fragment: str) -> None:
        self.buffer += fragment
        self.fragment_count += 1
        self.state.replace(self._index, self.message)

    async def consume(self, fragments: AsyncIterable[str] | Iterable[str]) -> Message:
        """Drain `fragments` into the conversation and return the final message.

        Never raises for stream failures; see `self.error`.

        Raises:
            RuntimeError: When called twice on the same aggregator.
        """
        if self._index is not None:
            raise RuntimeError("StreamAggregator instances are single-use")

        self._index = self.state.append(self.placeholder)

        source = _iterate(fragments)
        try:
            async for fragment in source:
                if not fragment:
                    continue
                self._apply(str(fragment))
        except Exception as exc:
            self.error = exc
        finally:
            await source.aclose()
            if inspect.isasyncgen(fragments):
                await fragments.aclose()

        return self.message
