"""Durable, ordered session list with a signed-in user record.

Purpose of this abstraction:
    Hold every titled conversation as an ordered `list[Session]` and mirror it to
    disk as a full JSON snapshot so the history survives restarts.

Persisted layout:
    Two independent records in `DATA_DIR`, keyed by `STORAGE_NAMESPACE`:
    - `<namespace>_user.json`: `{id, name, email}`; absence means signed out.
    - `<namespace>_chats.json`: the ordered session list, written verbatim.

Write policy:
    - Every mutation (`create`, `replace_messages`, `delete`, `reorder`) rewrites
      the whole sessions record. Last write wins.
    - Nothing is written while no user record is present.
    - `sign_out` removes both records and clears the in-memory list.

Ordering:
    New sessions are prepended (newest first). `reorder` only swaps neighbours,
    so list length never changes under reorder.

Failure handling:
    Unreadable records are logged and treated as absent. Write failures are
    logged and re-raised so callers never believe an unsaved snapshot landed.
"""

import os
import json
import logging

from brainora.llm.provider_config import DATA_DIR, STORAGE_NAMESPACE
from brainora.memory.models import Message, Session, User


logger = logging.getLogger(__name__)


DIRECTION_UP = "up"
DIRECTION_DOWN = "down"


def atomic_json_save(path, data):
    """Persist JSON data atomically via temporary file replacement.

    Side effects:
        Writes `<path>.tmp` and atomically replaces `path`.
    """
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def load_json(path):
    """Load a JSON record, returning `None` when missing or unreadable."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except Exception:
        logger.exception("Failed to load JSON record from %s", path)
        return None


class SessionStore:
    """Ordered session list plus user record, persisted as JSON snapshots."""

    def __init__(self, data_dir: str | None = DATA_DIR, namespace: str = STORAGE_NAMESPACE) -> None:
        """Create an empty store.

        Args:
            data_dir: Directory holding the records, or `None` for a purely
                in-memory store (nothing is ever written).
            namespace: Record key prefix.
        """
        self.data_dir = data_dir
        self.namespace = namespace
        self._sessions: list[Session] = []
        self._user: User | None = None

    # -----------------------------------------------------
    # Record paths
    # -----------------------------------------------------

    def _record_path(self, name: str) -> str | None:
        if not self.data_dir:
            return None
        return os.path.join(self.data_dir, f"{self.namespace}_{name}.json")

    @property
    def user_path(self) -> str | None:
        return self._record_path("user")

    @property
    def sessions_path(self) -> str | None:
        return self._record_path("chats")

    # -----------------------------------------------------
    # Load / persist
    # -----------------------------------------------------

    def load(self) -> "SessionStore":
        """Read both records from disk into memory.

        Sessions are only loaded when a user record exists, mirroring the write
        policy. Malformed entries are skipped.
        """
        self._user = None
        self._sessions = []

        if self.user_path is None:
            return self

        user_data = load_json(self.user_path)
        if isinstance(user_data, dict):
            self._user = User.from_dict(user_data)

        if self._user is None:
            return self

        sessions_data = load_json(self.sessions_path)
        if isinstance(sessions_data, list):
            self._sessions = [
                Session.from_dict(entry)
                for entry in sessions_data
                if isinstance(entry, dict)
            ]

        logger.info(
            "Loaded %d sessions for user %s from %s",
            len(self._sessions),
            self._user.id,
            self.data_dir,
        )
        return self

    def _persist_sessions(self) -> None:
        """Write the full session snapshot, only while signed in."""
        if self._user is None or self.sessions_path is None:
            return
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            atomic_json_save(self.sessions_path, [s.to_dict() for s in self._sessions])
        except Exception:
            logger.exception("Failed to write sessions record %s", self.sessions_path)
            raise

    # -----------------------------------------------------
    # User record
    # -----------------------------------------------------

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def signed_in(self) -> bool:
        return self._user is not None

    def sign_in(self, user: User) -> None:
        """Store the user record and snapshot the current session list."""
        self._user = user
        if self.user_path is None:
            return
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            atomic_json_save(self.user_path, user.to_dict())
        except Exception:
            logger.exception("Failed to write user record %s", self.user_path)
            raise
        self._persist_sessions()

    def sign_out(self) -> None:
        """Drop the user record; clears the sessions record as a side effect."""
        self._user = None
        self._sessions = []
        for path in (self.user_path, self.sessions_path):
            if path and os.path.exists(path):
                try:
                    os.remove(path)
                except OSError:
                    logger.exception("Failed to remove record %s", path)

    # -----------------------------------------------------
    # Sessions
    # -----------------------------------------------------

    @property
    def sessions(self) -> list[Session]:
        """Return a shallow copy of the ordered session list."""
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def _index_of(self, session_id: str) -> int:
        for index, session in enumerate(self._sessions):
            if session.id == session_id:
                return index
        return -1

    def get(self, session_id: str) -> Session | None:
        index = self._index_of(session_id)
        return self._sessions[index] if index != -1 else None

    def create(self, title: str, messages: list[Message]) -> Session:
        """Create a session and prepend it to the list."""
        session = Session(title=title, messages=list(messages))
        self._sessions.insert(0, session)
        self._persist_sessions()
        return session

    def replace_messages(self, session_id: str, messages: list[Message]) -> bool:
        """Overwrite a session's history with a full snapshot."""
        session = self.get(session_id)
        if session is None:
            return False
        session.messages = list(messages)
        self._persist_sessions()
        return True

    def delete(self, session_id: str) -> bool:
        index = self._index_of(session_id)
        if index == -1:
            return False
        del self._sessions[index]
        self._persist_sessions()
        return True

    def reorder(self, session_id: str, direction: str) -> bool:
        """Swap a session with its neighbour in `direction` (`up` or `down`).

        Returns:
            `True` when a swap happened; `False` for unknown ids, unknown
            directions, and moves past either end of the list.
        """
        index = self._index_of(session_id)
        if index == -1:
            return False

        if direction == DIRECTION_UP:
            target = index - 1
        elif direction == DIRECTION_DOWN:
            target = index + 1
        else:
            return False

        if target < 0 or target >= len(self._sessions):
            return False

        self._sessions[index], self._sessions[target] = (
            self._sessions[target],
            self._sessions[index],
        )
        self._persist_sessions()
        return True

    def search(self, term: str) -> list[Session]:
        """Return sessions whose title contains `term` (case-insensitive)."""
        needle = (term or "").lower()
        return [s for s in self._sessions if needle in s.title.lower()]
