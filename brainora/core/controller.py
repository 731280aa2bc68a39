"""Top-level conversation orchestration.

Architectural role:
    `ConversationController` is the single owner of the session list (through
    `SessionStore`) and of the active conversation (`ConversationState`). API
    adapters hold one instance and call its operations; nothing here is a
    module-level singleton.

Submission lifecycle (`submit`):
    1. Drop the call when the text is blank or a submission is in flight.
    2. Append the user message immediately (optimistic).
    3. Set `busy`, delegate to `ModeDispatcher`, clear `busy` in `finally`.
    4. Append non-streamed replies.
    5. Commit when at least one assistant message exists: create + prepend a
       session when none is active, otherwise overwrite the active session's
       messages. Commit is the only store mutation of this flow.

Failure model:
    Provider failures are contained by the dispatcher. A failed image or
    grounded call leaves only the user message in memory and commits nothing;
    the user can resubmit. A failed stream commits whatever partial content
    arrived; when no text arrived at all it behaves like a failed grounded
    call.

Concurrency:
    Single-threaded `asyncio`. `busy` drops concurrent submissions; there is no
    queue and no cancellation of in-flight generation. Navigating away while a
    reply is in flight lets the generation finish, but its reply is neither
    shown nor committed.
"""

import logging
from typing import Sequence

from brainora.core.dispatcher import ModeDispatcher
from brainora.core.routing_types import DispatchOutcome, Mode
from brainora.core.state import EVENT_COMMIT, ConversationEvent, ConversationState, Listener
from brainora.llm.provider_config import DATA_DIR
from brainora.llm.service import GeminiGateway, ProviderGateway
from brainora.memory.models import ROLE_USER, Message, Session, User, derive_title
from brainora.memory.session_store import SessionStore


logger = logging.getLogger(__name__)


class ConversationController:
    """Owns the active conversation and sequences one submission at a time."""

    def __init__(
        self,
        gateway: ProviderGateway,
        store: SessionStore | None = None,
        dispatcher: ModeDispatcher | None = None,
    ) -> None:
        self.gateway = gateway
        self.store = store if store is not None else SessionStore(data_dir=None)
        self.dispatcher = dispatcher or ModeDispatcher(gateway)
        self.state = ConversationState()

    # -----------------------------------------------------
    # Read-only views
    # -----------------------------------------------------

    @property
    def active_session_id(self) -> str | None:
        return self.state.active_session_id

    @property
    def messages(self) -> list[Message]:
        return self.state.messages

    @property
    def busy(self) -> bool:
        return self.state.busy

    @property
    def sessions(self) -> list[Session]:
        return self.store.sessions

    @property
    def user(self) -> User | None:
        return self.store.user

    def add_listener(self, listener: Listener) -> None:
        self.state.add_listener(listener)

    def remove_listener(self, listener: Listener) -> None:
        self.state.remove_listener(listener)

    # -----------------------------------------------------
    # Submission
    # -----------------------------------------------------

    async def submit(self, raw_text: str, mode: Mode | str = Mode.DEFAULT) -> DispatchOutcome | None:
        """Turn one user submission into a committed message pair.

        Returns:
            The dispatch outcome, or `None` when the call was dropped (blank
            text or a submission already in flight).

        Raises:
            ValueError: Unknown mode name. Raised before any state change.
        """
        text = (raw_text or "").strip()
        if not text:
            return None

        if self.state.busy:
            logger.info("Submission dropped: a response is still in flight")
            return None

        mode = Mode.parse(mode)
        history = self.state.messages

        self.state.append(Message.user(text))
        self.state.busy = True
        epoch = self.state.epoch

        try:
            outcome = await self.dispatcher.dispatch(text, mode, history, self.state)
        finally:
            self.state.busy = False

        if self.state.epoch != epoch:
            logger.info(
                "Conversation changed while %s reply was in flight; reply discarded",
                outcome.strategy.value,
            )
            return outcome

        if not outcome.streamed:
            for reply in outcome.replies:
                self.state.append(reply)

        if outcome.replies:
            self._commit()

        return outcome

    async def regenerate(self, mode: Mode | str = Mode.DEFAULT) -> DispatchOutcome | None:
        """Re-submit the most recent user message text as a new turn."""
        for message in reversed(self.state.messages):
            if message.role == ROLE_USER:
                return await self.submit(message.content, mode)
        return None

    def _commit(self) -> None:
        """Write the in-memory message list back into the session store.

        A new session is titled from the first user message it contains.
        """
        messages = self.state.messages
        session_id = self.state.active_session_id

        if session_id is None or self.store.get(session_id) is None:
            first_text = next((m.content for m in messages if m.role == ROLE_USER), "")
            session = self.store.create(derive_title(first_text), messages)
            self.state.active_session_id = session.id
            logger.info("Created session %s (%r)", session.id, session.title)
        else:
            self.store.replace_messages(session_id, messages)

        self.state.emit(ConversationEvent(EVENT_COMMIT, session_id=self.state.active_session_id))

    # -----------------------------------------------------
    # Session navigation
    # -----------------------------------------------------

    def new_conversation(self) -> None:
        """Leave the active session; the store is untouched."""
        self.state.reset()

    def select_session(self, session_id: str) -> bool:
        session = self.store.get(session_id)
        if session is None:
            return False
        self.state.reset(session.messages, session_id=session.id)
        return True

    def delete_session(self, session_id: str) -> bool:
        deleted = self.store.delete(session_id)
        if deleted and self.state.active_session_id == session_id:
            self.new_conversation()
        return deleted

    def reorder_session(self, session_id: str, direction: str) -> bool:
        return self.store.reorder(session_id, direction)

    def search_sessions(self, term: str) -> list[Session]:
        return self.store.search(term)

    # -----------------------------------------------------
    # Identity
    # -----------------------------------------------------

    def sign_in(self, user: User) -> None:
        self.store.sign_in(user)

    def sign_out(self) -> None:
        """Drop the user record, every stored session, and the active chat."""
        self.store.sign_out()
        self.new_conversation()

    # -----------------------------------------------------
    # Presentation helpers
    # -----------------------------------------------------

    def filter_messages(self, term: str) -> list[Message]:
        """Messages whose content contains `term` (case-insensitive)."""
        needle = (term or "").lower()
        return [m for m in self.state.messages if needle in m.content.lower()]

    def export_transcript(self, messages: Sequence[Message] | None = None) -> str:
        """Render `ROLE: content` blocks separated by blank lines."""
        if messages is None:
            messages = self.state.messages
        return "\n\n".join(f"{m.role.upper()}: {m.content}" for m in messages)


def build_controller(data_dir: str | None = DATA_DIR) -> ConversationController:
    """Wire the Gemini gateway and the on-disk store used by the adapters."""
    store = SessionStore(data_dir=data_dir).load()
    return ConversationController(GeminiGateway(), store=store)
