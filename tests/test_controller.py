#!/usr/bin/env python3
"""
Brainora Conversation Controller Tests

Tests for:
- Submission lifecycle and commit
- Busy-drop of concurrent submissions
- Failure containment per strategy
- Session navigation and identity
- Transcript helpers
"""

import asyncio
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from brainora.core.controller import ConversationController
from brainora.core.routing_types import Mode, Strategy
from brainora.core.state import EVENT_APPEND, EVENT_BUSY, EVENT_COMMIT, EVENT_UPDATE
from brainora.llm.client import ProviderError
from brainora.memory.models import ROLE_ASSISTANT, ROLE_USER, Message, User
from brainora.memory.session_store import DIRECTION_DOWN, SessionStore
from tests.fakes import FakeGateway


class ControllerTestCase(unittest.IsolatedAsyncioTestCase):

    def make_controller(self, **gateway_kwargs):
        self.gateway = FakeGateway(**gateway_kwargs)
        self.controller = ConversationController(self.gateway)
        return self.controller


class TestSubmit(ControllerTestCase):

    async def test_first_submission_creates_session(self):
        controller = self.make_controller(fragments=["Hi", " there"])

        outcome = await controller.submit("Hello")

        self.assertIs(outcome.strategy, Strategy.STREAM)
        self.assertEqual(len(controller.sessions), 1)
        session = controller.sessions[0]
        self.assertEqual(session.title, "Hello")
        self.assertEqual(controller.active_session_id, session.id)
        self.assertEqual(
            [(m.role, m.content) for m in session.messages],
            [(ROLE_USER, "Hello"), (ROLE_ASSISTANT, "Hi there")],
        )
        self.assertEqual(session.messages, controller.messages)
        self.assertFalse(controller.busy)

    async def test_second_submission_overwrites_active_session(self):
        controller = self.make_controller()
        await controller.submit("Hello")
        await controller.submit("And again")

        self.assertEqual(len(controller.sessions), 1)
        self.assertEqual(len(controller.sessions[0].messages), 4)
        self.assertEqual(controller.sessions[0].messages, controller.messages)
        self.assertEqual(controller.sessions[0].title, "Hello")

    async def test_history_excludes_new_message(self):
        controller = self.make_controller()
        await controller.submit("Hello")
        await controller.submit("Next")

        history, text, mode = self.gateway.stream_calls[1]
        self.assertEqual(text, "Next")
        self.assertEqual([m.content for m in history], ["Hello", "Hi there"])
        self.assertEqual(mode, "default")

    async def test_text_is_trimmed(self):
        controller = self.make_controller()
        await controller.submit("   Hello   ")
        self.assertEqual(controller.messages[0].content, "Hello")

    async def test_blank_text_is_noop(self):
        controller = self.make_controller()
        for text in ("", "   ", "\n\t", None):
            self.assertIsNone(await controller.submit(text))
        self.assertEqual(controller.messages, [])
        self.assertEqual(self.gateway.stream_calls, [])

    async def test_unknown_mode_raises_before_state_change(self):
        controller = self.make_controller()
        with self.assertRaises(ValueError):
            await controller.submit("Hello", "poetry")
        self.assertEqual(controller.messages, [])
        self.assertFalse(controller.busy)

    async def test_mode_accepts_member_or_name(self):
        controller = self.make_controller()
        await controller.submit("Explain tides", "knowledge")
        await controller.submit("Explain waves", Mode.SEARCH)
        await controller.regenerate("search")

        self.assertEqual([call[2] for call in self.gateway.stream_calls], ["knowledge", "search", "search"])

    async def test_title_truncated(self):
        controller = self.make_controller()
        text = "A very long first question that keeps going"
        await controller.submit(text)
        self.assertEqual(controller.sessions[0].title, text[:30])

    async def test_event_sequence(self):
        controller = self.make_controller(fragments=["Hi", " there"])
        events = []
        controller.add_listener(events.append)

        await controller.submit("Hello")

        kinds = [e.kind for e in events]
        self.assertEqual(
            kinds,
            [EVENT_APPEND, EVENT_BUSY, EVENT_APPEND, EVENT_UPDATE, EVENT_UPDATE, EVENT_BUSY, EVENT_COMMIT],
        )
        self.assertEqual(events[-1].session_id, controller.active_session_id)

    async def test_busy_drops_second_submission(self):
        controller = self.make_controller()
        self.gateway.gate = asyncio.Event()

        first = asyncio.create_task(controller.submit("Hello"))
        while not controller.busy:
            await asyncio.sleep(0)

        dropped = await controller.submit("Second")
        self.assertIsNone(dropped)

        self.gateway.gate.set()
        await first

        user_messages = [m for m in controller.messages if m.role == ROLE_USER]
        self.assertEqual([m.content for m in user_messages], ["Hello"])
        self.assertEqual(len(self.gateway.stream_calls), 1)


class TestStrategies(ControllerTestCase):

    async def test_image_intent_in_default_mode(self):
        controller = self.make_controller()

        outcome = await controller.submit("draw a cat")

        self.assertIs(outcome.strategy, Strategy.IMAGE)
        self.assertEqual(self.gateway.image_calls, ["draw a cat"])
        self.assertEqual(self.gateway.stream_calls, [])
        self.assertTrue(controller.messages[-1].is_image_result)
        self.assertEqual(len(controller.sessions), 1)

    async def test_null_image_commits_fallback(self):
        controller = self.make_controller(image_url=None)

        await controller.submit("a quiet harbour", Mode.CREATIVE)

        reply = controller.messages[-1]
        self.assertIn("a quiet harbour", reply.content)
        self.assertIsNone(reply.is_image_result)
        self.assertEqual(len(controller.sessions[0].messages), 2)

    async def test_image_failure_commits_nothing(self):
        controller = self.make_controller(image_error=ProviderError("GEMINI HTTP ERROR (503)"))

        with self.assertLogs("brainora.core.dispatcher", level="ERROR"):
            outcome = await controller.submit("a quiet harbour", Mode.CREATIVE)

        self.assertEqual(outcome.replies, [])
        self.assertEqual([m.role for m in controller.messages], [ROLE_USER])
        self.assertEqual(controller.sessions, [])
        self.assertIsNone(controller.active_session_id)
        self.assertFalse(controller.busy)

    async def test_grounded_answer_with_citations(self):
        controller = self.make_controller()

        await controller.submit("today's headlines", Mode.LIVE)

        reply = controller.messages[-1]
        self.assertEqual(reply.content, "Grounded answer")
        self.assertEqual([c.title for c in reply.citations], ["A", "B"])
        self.assertEqual(controller.sessions[0].messages[-1], reply)

    async def test_grounded_failure_then_retry(self):
        controller = self.make_controller(grounded_error=ProviderError("GEMINI HTTP ERROR"))

        with self.assertLogs("brainora.core.dispatcher", level="ERROR"):
            await controller.submit("today's headlines", Mode.LIVE)
        self.assertEqual(controller.sessions, [])

        self.gateway.grounded_error = None
        outcome = await controller.submit("today's headlines", Mode.LIVE)

        self.assertTrue(outcome.ok)
        self.assertEqual(len(controller.sessions), 1)
        self.assertEqual(
            [m.role for m in controller.messages],
            [ROLE_USER, ROLE_USER, ROLE_ASSISTANT],
        )

    async def test_stream_failure_commits_partial(self):
        controller = self.make_controller(fragments=["Half"], stream_error=ProviderError("reset"))

        outcome = await controller.submit("Hello")

        self.assertIsNotNone(outcome.error)
        self.assertEqual(controller.messages[-1].content, "Half")
        self.assertEqual(controller.sessions[0].messages[-1].content, "Half")

    async def test_stream_failure_before_text_commits_nothing(self):
        class BrokenGateway(FakeGateway):
            def stream_chat(self, history, new_text, mode="default"):
                raise ProviderError("GEMINI KEY NOT FOUND")

        controller = ConversationController(BrokenGateway())
        events = []
        controller.add_listener(events.append)

        with self.assertLogs("brainora.core.dispatcher", level="ERROR"):
            outcome = await controller.submit("Hello")

        self.assertEqual(outcome.replies, [])
        self.assertEqual(controller.sessions, [])
        self.assertIsNone(controller.active_session_id)
        self.assertEqual([(m.role, m.content) for m in controller.messages], [(ROLE_USER, "Hello")])
        self.assertFalse(controller.busy)
        self.assertNotIn(EVENT_COMMIT, [e.kind for e in events])

    async def test_stream_failure_before_text_keeps_existing_session(self):
        controller = self.make_controller()
        await controller.submit("Hello")
        stored = list(controller.sessions[0].messages)

        self.gateway.fragments = []
        self.gateway.stream_error = ProviderError("reset")
        with self.assertLogs("brainora.core.dispatcher", level="ERROR"):
            await controller.submit("Again")

        self.assertEqual(controller.sessions[0].messages, stored)
        self.assertEqual(controller.messages[-1].content, "Again")


class TestNavigation(ControllerTestCase):

    async def asyncSetUp(self):
        controller = self.make_controller()
        await controller.submit("First chat")
        self.first_id = controller.active_session_id
        controller.new_conversation()
        await controller.submit("Second chat")
        self.second_id = controller.active_session_id

    async def test_new_sessions_are_prepended(self):
        self.assertEqual([s.id for s in self.controller.sessions], [self.second_id, self.first_id])

    async def test_new_conversation_leaves_store(self):
        self.controller.new_conversation()
        self.assertIsNone(self.controller.active_session_id)
        self.assertEqual(self.controller.messages, [])
        self.assertEqual(len(self.controller.sessions), 2)

    async def test_select_session(self):
        self.assertTrue(self.controller.select_session(self.first_id))
        self.assertEqual(self.controller.active_session_id, self.first_id)
        self.assertEqual(self.controller.messages[0].content, "First chat")

        await self.controller.submit("Follow up")

        self.assertEqual(len(self.controller.sessions), 2)
        first = [s for s in self.controller.sessions if s.id == self.first_id][0]
        self.assertEqual(len(first.messages), 4)

    async def test_select_unknown_session(self):
        self.assertFalse(self.controller.select_session("missing"))
        self.assertEqual(self.controller.active_session_id, self.second_id)

    async def test_delete_active_session_clears_view(self):
        self.assertTrue(self.controller.delete_session(self.second_id))
        self.assertIsNone(self.controller.active_session_id)
        self.assertEqual(self.controller.messages, [])
        self.assertEqual([s.id for s in self.controller.sessions], [self.first_id])

    async def test_delete_other_session_keeps_view(self):
        self.assertTrue(self.controller.delete_session(self.first_id))
        self.assertEqual(self.controller.active_session_id, self.second_id)
        self.assertEqual(len(self.controller.messages), 2)

    async def test_reorder_and_search(self):
        self.assertTrue(self.controller.reorder_session(self.second_id, DIRECTION_DOWN))
        self.assertEqual([s.id for s in self.controller.sessions], [self.first_id, self.second_id])
        self.assertEqual([s.id for s in self.controller.search_sessions("second")], [self.second_id])

    async def test_navigation_while_busy_discards_reply(self):
        self.gateway.gate = asyncio.Event()
        self.controller.new_conversation()

        task = asyncio.create_task(self.controller.submit("Pending question"))
        while not self.controller.busy:
            await asyncio.sleep(0)

        self.assertTrue(self.controller.select_session(self.first_id))
        self.gateway.gate.set()
        await task

        self.assertEqual(self.controller.active_session_id, self.first_id)
        self.assertEqual(len(self.controller.messages), 2)
        self.assertEqual(len(self.controller.sessions), 2)
        self.assertFalse(self.controller.busy)


class TestIdentityAndHelpers(ControllerTestCase):

    async def test_sign_in_persists_and_sign_out_clears(self):
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir, True)
        gateway = FakeGateway()
        controller = ConversationController(gateway, store=SessionStore(data_dir=temp_dir))

        controller.sign_in(User.from_email("ada@example.com"))
        await controller.submit("Hello")

        reloaded = SessionStore(data_dir=temp_dir).load()
        self.assertEqual(len(reloaded.sessions), 1)

        controller.sign_out()

        self.assertIsNone(controller.user)
        self.assertEqual(controller.sessions, [])
        self.assertEqual(controller.messages, [])
        self.assertIsNone(SessionStore(data_dir=temp_dir).load().user)

    async def test_regenerate_resubmits_last_user_text(self):
        controller = self.make_controller()
        await controller.submit("Hello")

        await controller.regenerate()

        self.assertEqual([call[1] for call in self.gateway.stream_calls], ["Hello", "Hello"])
        self.assertEqual(len(controller.messages), 4)

    async def test_regenerate_without_history(self):
        controller = self.make_controller()
        self.assertIsNone(await controller.regenerate())

    async def test_filter_messages(self):
        controller = self.make_controller()
        await controller.submit("Hello")
        self.assertEqual([m.content for m in controller.filter_messages("THERE")], ["Hi there"])
        self.assertEqual(len(controller.filter_messages("")), 2)

    def test_export_transcript(self):
        controller = ConversationController(FakeGateway())
        messages = [Message.user("Hello"), Message.assistant("Hi there")]
        self.assertEqual(
            controller.export_transcript(messages),
            "USER: Hello\n\nASSISTANT: Hi there",
        )


if __name__ == "__main__":
    unittest.main()
