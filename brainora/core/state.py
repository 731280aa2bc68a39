"""Transient state of the conversation currently on screen.

Architectural role:
    Holds `active_session_id`, the in-memory message list, and the `busy` flag
    for `ConversationController`, and reports every change to registered
    listeners so adapters (CLI, SSE) can render incrementally.

Single-writer rule:
    Only the controller and the per-call helpers it hands this object to
    (dispatcher, stream aggregator) mutate it. Listeners receive immutable
    `Message` values and must not keep a reference to the state itself.

Navigation while busy:
    `reset` bumps `epoch`. Slot updates whose target no longer holds the same
    message id are ignored, so a stream started before a reset never writes
    into the conversation shown after it.

Event kinds:
    - `append`: a message was added to the end of the list.
    - `update`: an existing slot was replaced (streamed content).
    - `busy`: the busy flag changed.
    - `commit`: the list was written back into the session store.
    - `remove`: a message was dropped (empty placeholder of a failed stream).
    - `reset`: the list was replaced wholesale (new chat / session switch).
"""

import logging
from dataclasses import dataclass
from typing import Callable

from brainora.memory.models import Message


logger = logging.getLogger(__name__)


EVENT_APPEND = "append"
EVENT_UPDATE = "update"
EVENT_BUSY = "busy"
EVENT_COMMIT = "commit"
EVENT_REMOVE = "remove"
EVENT_RESET = "reset"


@dataclass(frozen=True)
class ConversationEvent:
    """One observable change of the active conversation."""

    kind: str
    message: Message | None = None
    index: int | None = None
    busy: bool | None = None
    session_id: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"kind": self.kind}
        if self.message is not None:
            data["message"] = self.message.to_dict()
        if self.index is not None:
            data["index"] = self.index
        if self.busy is not None:
            data["busy"] = self.busy
        if self.session_id is not None:
            data["sessionId"] = self.session_id
        return data


Listener = Callable[[ConversationEvent], None]


class ConversationState:
    """Active session pointer, message list, and busy flag."""

    def __init__(self) -> None:
        self.active_session_id: str | None = None
        self._messages: list[Message] = []
        self._busy = False
        self._listeners: list[Listener] = []
        # Bumped on every reset so in-flight work can detect navigation.
        self.epoch = 0

    # -----------------------------------------------------
    # Listeners
    # -----------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: ConversationEvent) -> None:
        """Deliver an event to every listener.

        A failing listener is logged and skipped so rendering problems never
        corrupt conversation state.
        """
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Conversation listener failed on %s event", event.kind)

    # -----------------------------------------------------
    # Messages
    # -----------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        """Return a snapshot copy of the message list."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: Message) -> int:
        """Append a message and return its index."""
        self._messages.append(message)
        index = len(self._messages) - 1
        self.emit(ConversationEvent(EVENT_APPEND, message=message, index=index))
        return index

    def replace(self, index: int, message: Message) -> bool:
        """Replace the message in slot `index` with a new value of the same id.

        Returns:
            `False` (and changes nothing) when the slot no longer holds that
            message, which happens after a `reset` during streaming.
        """
        if not 0 <= index < len(self._messages) or self._messages[index].id != message.id:
            logger.debug("Ignoring update for message %s: slot %s is stale", message.id, index)
            return False
        self._messages[index] = message
        self.emit(ConversationEvent(EVENT_UPDATE, message=message, index=index))
        return True

    def discard(self, message: Message) -> bool:
        """Remove the message with `message.id`; `False` when it is gone."""
        for index, current in enumerate(self._messages):
            if current.id == message.id:
                del self._messages[index]
                self.emit(ConversationEvent(EVENT_REMOVE, message=current, index=index))
                return True
        return False

    def reset(self, messages: list[Message] | None = None, session_id: str | None = None) -> None:
        """Replace the whole list and the active session pointer."""
        self._messages = list(messages or [])
        self.active_session_id = session_id
        self.epoch += 1
        self.emit(ConversationEvent(EVENT_RESET, session_id=session_id))

    # -----------------------------------------------------
    # Busy flag
    # -----------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._busy

    @busy.setter
    def busy(self, value: bool) -> None:
        if value == self._busy:
            return
        self._busy = value
        self.emit(ConversationEvent(EVENT_BUSY, busy=value))
