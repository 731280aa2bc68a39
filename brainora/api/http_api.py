"""
HTTP API adapter for the Brainora conversation engine.

Architectural role:
- Expose the controller's operations over JSON endpoints.
- Stream assistant output as Server-Sent Events.
- Enforce adapter-level input validation (blank text, unknown modes).
- Delegate all orchestration to `ConversationController`.

Endpoint responsibilities:
- `POST /v1/chat`: submit one message (JSON outcome or SSE stream).
- `GET /v1/conversation`, `POST /v1/conversation/new`,
  `GET /v1/conversation/messages`, `GET /v1/conversation/export`.
- `GET /v1/sessions`, `POST /v1/sessions/{id}/select`,
  `DELETE /v1/sessions/{id}`, `POST /v1/sessions/{id}/move`.
- `GET /v1/auth/me`, `POST /v1/auth/login`, `POST /v1/auth/guest`,
  `POST /v1/auth/logout`.

API request lifecycle (`POST /v1/chat`):
1. Parse `{message, mode, stream}`.
2. Reject when signed out (401), blank (400), unknown mode (400), busy (409).
3. Non-stream: await the submission and return the outcome envelope.
4. Stream: run the submission as a task, forward conversation events as SSE
   frames, then a terminal `done` frame and the `[DONE]` sentinel.

Error handling strategy:
- Validation failures return structured 4xx JSON responses.
- Provider failures never surface as 5xx: they are contained by the engine and
  reported in the outcome's `error` field (sanitized text only).
- A failure outside the provider (e.g. the session write) is logged and
  returned as HTTP 500, or as a `done` frame carrying `error` when streaming.
- Client disconnects stop the SSE writer; the submission itself runs to
  completion (no cancellation).

Concurrency:
- Every handler is a coroutine so controller mutations and listener callbacks
  all run on the event loop thread, never in the threadpool.

Side effects:
- The default app builds one controller over the on-disk session store on
  first request.
"""

import asyncio
import json
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from brainora.core.controller import ConversationController, build_controller
from brainora.core.routing_types import DispatchOutcome, Mode
from brainora.core.state import ConversationEvent
from brainora.llm.provider_config import DEBUG
from brainora.memory.models import Session, User
from brainora.memory.session_store import DIRECTION_DOWN, DIRECTION_UP


logger = logging.getLogger(__name__)

SUBMISSION_FAILED = "The response could not be saved"


# ============================================================
# Request Schemas
# ============================================================

class ChatRequest(BaseModel):
    message: str
    mode: str = Mode.DEFAULT.value
    stream: bool = False


class MoveRequest(BaseModel):
    direction: str


class LoginRequest(BaseModel):
    email: str
    name: str | None = None


# ============================================================
# Response Shaping
# ============================================================

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def session_summary(session: Session) -> dict:
    return {
        "id": session.id,
        "title": session.title,
        "createdAt": session.created_at.isoformat(),
        "messageCount": len(session.messages),
    }


def conversation_payload(controller: ConversationController) -> dict:
    return {
        "activeSessionId": controller.active_session_id,
        "busy": controller.busy,
        "messages": [m.to_dict() for m in controller.messages],
    }


def outcome_payload(outcome: DispatchOutcome) -> dict:
    return {
        "strategy": outcome.strategy.value,
        "mode": outcome.decision.mode.value,
        "imageIntent": outcome.decision.image_intent,
        "replies": [m.to_dict() for m in outcome.replies],
        "error": str(outcome.error) if outcome.error is not None else None,
    }


def _sse(data) -> str:
    return f"data: {json.dumps(data)}\n\n"


# ============================================================
# Application Factory
# ============================================================

def create_app(controller: ConversationController | None = None) -> FastAPI:
    """
    Create the FastAPI application around one controller.

    Passing `None` defers building the default controller (Gemini gateway plus
    on-disk store) until the first request needs it.
    """
    app = FastAPI(title="Brainora")
    app.state.controller = controller

    def get_controller(request: Request) -> ConversationController:
        if request.app.state.controller is None:
            request.app.state.controller = build_controller()
        return request.app.state.controller

    # ------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------

    @app.post("/v1/chat")
    async def chat(body: ChatRequest, request: Request):
        """
        Submit one message in the declared mode.

        Input validation behavior:
        - Signed out -> HTTP 401.
        - Blank message -> HTTP 400.
        - Unknown mode -> HTTP 400.
        - Submission in flight -> HTTP 409 (dropped, not queued).
        """
        controller = get_controller(request)

        if DEBUG:
            logger.debug("chat request mode=%s stream=%s message=%r", body.mode, body.stream, body.message)

        if controller.user is None:
            return _error(401, "Sign in required")

        if not body.message.strip():
            return _error(400, "No message provided")

        try:
            mode = Mode.parse(body.mode)
        except ValueError:
            return _error(400, f"Unknown mode: {body.mode}")

        if controller.busy:
            return _error(409, "A response is still in progress")

        if not body.stream:
            try:
                outcome = await controller.submit(body.message, mode)
            except Exception:
                logger.exception("Chat submission failed")
                return _error(500, SUBMISSION_FAILED)
            if outcome is None:
                return _error(409, "A response is still in progress")
            return {
                "outcome": outcome_payload(outcome),
                "conversation": conversation_payload(controller),
            }

        queue: asyncio.Queue = asyncio.Queue()

        def listener(event: ConversationEvent) -> None:
            queue.put_nowait(event.to_dict())

        controller.add_listener(listener)
        task = asyncio.create_task(controller.submit(body.message, mode))

        def _finish(done: asyncio.Task) -> None:
            controller.remove_listener(listener)
            queue.put_nowait(None)

        task.add_done_callback(_finish)

        async def event_generator():
            """
            Yield SSE frames for every conversation event of this submission.

            Response formatting:
            - Each event frame is `{"kind": ..., ...}`.
            - Terminal frame is `{"kind": "done", "outcome": ..., "error": ...}`;
              `error` is set when the submission itself failed.
            - Final sentinel frame is `[DONE]`.
            """
            try:
                while True:
                    if await request.is_disconnected():
                        if DEBUG:
                            logger.debug("Client disconnected during stream.")
                        return

                    item = await queue.get()
                    if item is None:
                        break
                    yield _sse(item)

                done = {"kind": "done", "outcome": None, "error": None}
                try:
                    outcome = task.result()
                    if outcome is not None:
                        done["outcome"] = outcome_payload(outcome)
                except Exception:
                    logger.exception("Streamed chat submission failed")
                    done["error"] = SUBMISSION_FAILED
                done["activeSessionId"] = controller.active_session_id
                yield _sse(done)
                yield "data: [DONE]\n\n"
            except (asyncio.CancelledError, BrokenPipeError, ConnectionResetError):
                if DEBUG:
                    logger.debug("Streaming cancelled by client.")
                return

        return StreamingResponse(event_generator(), media_type="text/event-stream")

    # ------------------------------------------------------------
    # Active conversation
    # ------------------------------------------------------------

    @app.get("/v1/conversation")
    async def get_conversation(request: Request):
        return conversation_payload(get_controller(request))

    @app.post("/v1/conversation/new")
    async def new_conversation(request: Request):
        controller = get_controller(request)
        controller.new_conversation()
        return conversation_payload(controller)

    @app.get("/v1/conversation/messages")
    async def filter_messages(request: Request, q: str = ""):
        controller = get_controller(request)
        return {"messages": [m.to_dict() for m in controller.filter_messages(q)]}

    @app.get("/v1/conversation/export")
    async def export_conversation(request: Request):
        return {"text": get_controller(request).export_transcript()}

    # ------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------

    @app.get("/v1/sessions")
    async def list_sessions(request: Request, q: str = ""):
        controller = get_controller(request)
        sessions = controller.search_sessions(q) if q else controller.sessions
        return {"object": "list", "data": [session_summary(s) for s in sessions]}

    @app.post("/v1/sessions/{session_id}/select")
    async def select_session(session_id: str, request: Request):
        controller = get_controller(request)
        if not controller.select_session(session_id):
            return _error(404, "Session not found")
        return conversation_payload(controller)

    @app.delete("/v1/sessions/{session_id}")
    async def delete_session(session_id: str, request: Request):
        controller = get_controller(request)
        if not controller.delete_session(session_id):
            return _error(404, "Session not found")
        return {"deleted": session_id, "activeSessionId": controller.active_session_id}

    @app.post("/v1/sessions/{session_id}/move")
    async def move_session(session_id: str, body: MoveRequest, request: Request):
        controller = get_controller(request)
        if body.direction not in (DIRECTION_UP, DIRECTION_DOWN):
            return _error(400, f"Unknown direction: {body.direction}")
        if controller.store.get(session_id) is None:
            return _error(404, "Session not found")
        moved = controller.reorder_session(session_id, body.direction)
        return {
            "moved": moved,
            "order": [s.id for s in controller.sessions],
        }

    # ------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------

    @app.get("/v1/auth/me")
    async def me(request: Request):
        user = get_controller(request).user
        return {"user": user.to_dict() if user else None}

    @app.post("/v1/auth/login")
    async def login(body: LoginRequest, request: Request):
        if not body.email.strip():
            return _error(400, "No email provided")
        user = User.from_email(body.email, body.name)
        get_controller(request).sign_in(user)
        return {"user": user.to_dict()}

    @app.post("/v1/auth/guest")
    async def guest(request: Request):
        user = User.guest()
        get_controller(request).sign_in(user)
        return {"user": user.to_dict()}

    @app.post("/v1/auth/logout")
    async def logout(request: Request):
        get_controller(request).sign_out()
        return {"user": None}

    return app


app = create_app()
