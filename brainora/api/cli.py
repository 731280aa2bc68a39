"""
Interactive CLI adapter for Brainora.

Architectural role:
- Exposes terminal interaction over one `ConversationController`.
- Renders streamed assistant output incrementally from conversation events.
- Provides local commands for modes, sessions, and the user record.

Request lifecycle (per user turn, CLI):
1. Read stdin.
2. Handle local control commands (see `HELP_TEXT`).
3. Submit normal text in the active mode via `asyncio.run(controller.submit(...))`.
4. Print the reply: streamed text as it arrives, image/grounded replies whole.

Input validation behavior:
- Empty input is ignored.
- `/mode` validates the requested mode name.
- Session numbers are 1-based positions in the last listing order.

Error handling strategy:
- Provider failures are contained by the engine; the CLI prints a short
  "no response" notice and keeps the loop alive.
- EOF and keyboard interrupts terminate the loop without traceback output.

Side effects:
- Reads and writes the session store under `BRAINORA_DATA_DIR`.
"""

import sys
import asyncio
import logging

from brainora.core.controller import ConversationController, build_controller
from brainora.core.routing_types import Mode, Strategy
from brainora.core.state import (
    EVENT_APPEND,
    EVENT_COMMIT,
    EVENT_REMOVE,
    EVENT_RESET,
    EVENT_UPDATE,
    ConversationEvent,
)
from brainora.llm.provider_config import LOG_LEVEL
from brainora.memory.models import ROLE_ASSISTANT, Message, User
from brainora.memory.session_store import DIRECTION_DOWN, DIRECTION_UP


HELP_TEXT = """Commands:
 /mode [default|knowledge|search|creative|live]   show or switch mode
 /new                                             start a new chat
 /sessions [term]                                 list sessions (optionally by title)
 /open N | /delete N | /up N | /down N            act on session N of the list
 /find term                                       show messages containing term
 /export                                          print the transcript
 /retry                                           regenerate the last answer
 /login email [name] | /guest | /logout           manage the user record
 exit | quit                                      leave
"""


# =========================================================
# UTF-8 SAFE OUTPUT
# Best-effort stdout encoding normalization for interactive terminals.
# =========================================================

if hasattr(sys.stdout, "reconfigure"):
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
    except Exception:
        pass


class StreamPrinter:
    """Conversation listener printing assistant text deltas as they arrive."""

    def __init__(self, out=None) -> None:
        self.out = out if out is not None else sys.stdout
        self._printed: dict[str, int] = {}

    def __call__(self, event: ConversationEvent) -> None:
        # Printed lengths only matter while a reply is still streaming.
        if event.kind in (EVENT_COMMIT, EVENT_RESET, EVENT_REMOVE):
            self._printed.clear()
            return

        message = event.message
        if message is None or message.role != ROLE_ASSISTANT:
            return
        if event.kind not in (EVENT_APPEND, EVENT_UPDATE):
            return

        if message.is_image_result:
            self.out.write(f"{message.content}\n[image] {message.image_url[:64]}...\n")
        else:
            already = self._printed.get(message.id, 0)
            self.out.write(message.content[already:])
            self._printed[message.id] = len(message.content)

        for citation in message.citations or ():
            self.out.write(f"\n  - {citation.title}: {citation.uri}")
        self.out.flush()


def format_message(message: Message) -> str:
    label = "You" if message.role != ROLE_ASSISTANT else "Brainora"
    return f"{label}: {message.content}"


def _session_arg(controller: ConversationController, parts: list[str], listing: list):
    """Resolve a 1-based session number against the last listing."""
    if len(parts) < 2 or not parts[1].isdigit():
        print("Usage: <command> N (see /sessions)")
        return None
    index = int(parts[1]) - 1
    source = listing or controller.sessions
    if not 0 <= index < len(source):
        print(f"No session {parts[1]}.")
        return None
    return source[index]


def run(controller: ConversationController) -> None:
    """
    Run the CLI loop until exit/EOF.

    Interaction with core:
    - Calls `controller.submit(text, mode)` for non-command input.
    - Session and identity commands call the matching controller operations.
    """
    mode = Mode.DEFAULT
    listing: list = []

    controller.add_listener(StreamPrinter())

    print("Brainora started. (Type '/help' for commands, 'exit' to quit)")
    if controller.user:
        print(f"Signed in as {controller.user.name} <{controller.user.email}>")
        print(f"Stored sessions: {len(controller.sessions)}")
    else:
        print("Signed out: use /login email or /guest to keep history.")
    print("-" * 60)

    while True:

        try:
            prompt = f"[{mode.value}] You: " if mode is not Mode.DEFAULT else "You: "
            text = input(prompt).strip()

        except EOFError:
            print()
            break

        except KeyboardInterrupt:
            print("\nInterrupted.")
            break

        if not text:
            continue

        lowered = text.lower()

        if lowered in ("exit", "quit"):
            print("Shutting down.")
            break

        if lowered.startswith("/"):
            parts = text.split()
            command = parts[0].lower()

            if command == "/help":
                print(HELP_TEXT)

            elif command == "/mode":
                if len(parts) == 1:
                    print(f"Current mode: {mode.value}")
                    print("Available: " + ", ".join(m.value for m in Mode))
                    continue
                try:
                    mode = Mode.parse(parts[1])
                    print(f"Switched to mode: {mode.value}")
                except ValueError:
                    print(f"Mode '{parts[1]}' not found.")

            elif command == "/new":
                controller.new_conversation()
                print("New chat.")

            elif command == "/sessions":
                term = " ".join(parts[1:])
                listing = controller.search_sessions(term) if term else controller.sessions
                if not listing:
                    print("No sessions.")
                for number, session in enumerate(listing, start=1):
                    marker = " (active)" if session.id == controller.active_session_id else ""
                    print(f"{number}. {session.title}{marker}")

            elif command == "/open":
                session = _session_arg(controller, parts, listing)
                if session and controller.select_session(session.id):
                    for message in controller.messages:
                        print(format_message(message))

            elif command == "/delete":
                session = _session_arg(controller, parts, listing)
                if session and controller.delete_session(session.id):
                    listing = []
                    print(f"Deleted: {session.title}")

            elif command in ("/up", "/down"):
                session = _session_arg(controller, parts, listing)
                direction = DIRECTION_UP if command == "/up" else DIRECTION_DOWN
                if session is not None:
                    moved = controller.reorder_session(session.id, direction)
                    listing = []
                    print("Moved." if moved else "Already at the edge.")

            elif command == "/find":
                for message in controller.filter_messages(" ".join(parts[1:])):
                    print(format_message(message))

            elif command == "/export":
                print(controller.export_transcript())

            elif command == "/retry":
                print("\nBrainora: ", end="", flush=True)
                _report(asyncio.run(controller.regenerate(mode)))

            elif command == "/login":
                if len(parts) < 2:
                    print("Usage: /login email [name]")
                    continue
                user = User.from_email(parts[1], " ".join(parts[2:]) or None)
                controller.sign_in(user)
                print(f"Signed in as {user.name}.")

            elif command == "/guest":
                controller.sign_in(User.guest())
                print("Signed in as Guest User.")

            elif command == "/logout":
                controller.sign_out()
                listing = []
                print("Signed out. Local history cleared.")

            else:
                print(f"Unknown command {command}. Type /help.")

            continue

        print("\nBrainora: ", end="", flush=True)
        _report(asyncio.run(controller.submit(text, mode)))
        print("\n" + "-" * 60)


def _report(outcome) -> None:
    print()
    if outcome is None:
        print("(nothing sent)")
    elif not outcome.replies:
        print("(no response; please try again)")
    elif outcome.error is not None and outcome.strategy is Strategy.STREAM:
        print("(response interrupted)")


def main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run(build_controller())


if __name__ == "__main__":
    main()
