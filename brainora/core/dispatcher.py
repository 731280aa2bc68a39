"""Mode dispatch: choose a response strategy and run it against the gateway.

Strategy selection (`route`):
    | declared mode                | image intent | strategy        |
    |------------------------------|--------------|-----------------|
    | creative                     | any          | image synthesis |
    | any other                    | True         | image synthesis |
    | live                         | False        | grounded chat   |
    | default / knowledge / search | False        | streaming chat  |

    Streaming chat passes the declared mode through as a generation style.

Strategy execution (`dispatch`):
    - Image: one image message, or one fallback text message when the gateway
      returns `None`; nothing when the gateway raises. Exactly one of the three
      per submission.
    - Grounded: one message with text and citations; nothing when the gateway
      raises.
    - Streaming: the stream aggregator writes a placeholder into the live
      conversation and fills it fragment by fragment; a mid-stream failure
      keeps the partial content. A failure before any text arrived removes
      the placeholder again and produces nothing.

Error handling strategy:
    Every gateway failure is caught here, logged with `logger.exception`, and
    reported on `DispatchOutcome.error`. Nothing is retried and nothing is
    re-raised, so the controller always regains control.
"""

import logging
from typing import Callable, Sequence

from brainora.core.routing_types import DispatchOutcome, Mode, RoutingDecision, Strategy
from brainora.core.state import ConversationState
from brainora.core.stream_aggregator import StreamAggregator
from brainora.llm.service import ProviderGateway
from brainora.memory.models import Message
from brainora.nlp.intent_router import has_image_intent


logger = logging.getLogger(__name__)


IMAGE_CAPTION_TEMPLATE = 'I have synthesized the visualization for: "{prompt}"'

IMAGE_FALLBACK_TEMPLATE = (
    "I tried to generate an image but my visualization core encountered an issue. "
    "I'll describe it instead: {prompt}"
)


class ModeDispatcher:
    """State-free strategy selection plus execution against one gateway."""

    def __init__(
        self,
        gateway: ProviderGateway,
        classifier: Callable[[str], bool] = has_image_intent,
    ) -> None:
        self.gateway = gateway
        self.classifier = classifier

    def route(self, text: str, mode: Mode | str) -> RoutingDecision:
        """Select the strategy for `text` under the declared `mode`."""
        mode = Mode.parse(mode)
        image_intent = self.classifier(text)

        if mode is Mode.CREATIVE or image_intent:
            strategy = Strategy.IMAGE
        elif mode is Mode.LIVE:
            strategy = Strategy.GROUNDED
        else:
            strategy = Strategy.STREAM

        logger.info(
            "route_debug mode=%s image_intent=%s strategy=%s",
            mode.value,
            image_intent,
            strategy.value,
        )
        return RoutingDecision(strategy=strategy, mode=mode, image_intent=image_intent)

    async def dispatch(
        self,
        text: str,
        mode: Mode | str,
        history: Sequence[Message],
        state: ConversationState,
    ) -> DispatchOutcome:
        """Run the selected strategy for one submission.

        Args:
            text: Trimmed user text.
            mode: Declared mode.
            history: Conversation before the new user message.
            state: Live conversation; only the streaming strategy writes to it.

        Returns:
            `DispatchOutcome` describing replies and any contained failure.
        """
        decision = self.route(text, mode)

        if decision.strategy is Strategy.IMAGE:
            return await self._run_image(decision, text)

        if decision.strategy is Strategy.GROUNDED:
            return await self._run_grounded(decision, text, history)

        return await self._run_stream(decision, text, history, state)

    # -----------------------------------------------------
    # Strategies
    # -----------------------------------------------------

    async def _run_image(self, decision: RoutingDecision, text: str) -> DispatchOutcome:
        try:
            image_url = await self.gateway.generate_image(text)
        except Exception as exc:
            logger.exception("Image generation failed")
            return DispatchOutcome(decision=decision, error=exc)

        if image_url:
            reply = Message.assistant(
                IMAGE_CAPTION_TEMPLATE.format(prompt=text),
                image_url=image_url,
                is_image_result=True,
            )
        else:
            logger.warning("Image generation returned no image; using fallback text")
            reply = Message.assistant(IMAGE_FALLBACK_TEMPLATE.format(prompt=text))

        return DispatchOutcome(decision=decision, replies=[reply])

    async def _run_grounded(
        self,
        decision: RoutingDecision,
        text: str,
        history: Sequence[Message],
    ) -> DispatchOutcome:
        try:
            answer = await self.gateway.chat_with_grounding(list(history), text)
        except Exception as exc:
            logger.exception("Grounded chat failed")
            return DispatchOutcome(decision=decision, error=exc)

        reply = Message.assistant(answer.text, citations=tuple(answer.citations))
        return DispatchOutcome(decision=decision, replies=[reply])

    async def _run_stream(
        self,
        decision: RoutingDecision,
        text: str,
        history: Sequence[Message],
        state: ConversationState,
    ) -> DispatchOutcome:
        aggregator = StreamAggregator(state)
        error: Exception | None = None

        try:
            fragments = self.gateway.stream_chat(list(history), text, decision.mode.value)
        except Exception as exc:
            fragments = ()
            error = exc

        reply = await aggregator.consume(fragments)
        error = error or aggregator.error

        if error is None:
            return DispatchOutcome(decision=decision, replies=[reply], streamed=True)

        logger.error(
            "Streaming chat failed after %d fragments; keeping %d partial chars",
            aggregator.fragment_count,
            len(reply.content),
            exc_info=error,
        )

        if not reply.content:
            state.discard(reply)
            return DispatchOutcome(decision=decision, streamed=True, error=error)

        return DispatchOutcome(decision=decision, replies=[reply], streamed=True, error=error)
