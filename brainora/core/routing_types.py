"""Routing data contracts for `brainora.core.dispatcher`.

Architectural role:
    Defines the declared-mode vocabulary, the strategy labels, and the decision
    object produced by `ModeDispatcher.route` and consumed by `dispatch`.

Determinism:
    Purely structural and state-free.
"""

from dataclasses import dataclass, field
from enum import Enum

from brainora.memory.models import Message


class Mode(str, Enum):
    """Response style declared by the user for one submission."""

    DEFAULT = "default"
    KNOWLEDGE = "knowledge"
    SEARCH = "search"
    CREATIVE = "creative"
    LIVE = "live"

    @classmethod
    def parse(cls, value) -> "Mode":
        """Accept a `Mode`, its value, or `None` (-> default).

        Raises:
            ValueError: Unknown mode name.
        """
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.DEFAULT
        return cls(str(value).strip().lower())


class Strategy(str, Enum):
    """Response strategy selected for one submission."""

    IMAGE = "image"
    GROUNDED = "grounded"
    STREAM = "stream"


@dataclass
class RoutingDecision:
    """Strategy selection for one submission.

    Attributes:
        strategy: Selected response strategy.
        mode: Declared mode, passed through to streaming chat as a style.
        image_intent: Classifier signal observed for the input text.
    """

    strategy: Strategy
    mode: Mode = Mode.DEFAULT
    image_intent: bool = False


@dataclass
class DispatchOutcome:
    """Terminal state of one dispatched submission.

    Attributes:
        decision: Routing decision that was executed.
        replies: Assistant messages produced by the strategy.
        streamed: `True` when `replies` were already written into the live
            conversation by the stream aggregator.
        error: Contained failure, if any. With `replies` empty this is the
            "no assistant message" path; with a streamed reply it marks a
            partial answer kept after a mid-stream failure.
    """

    decision: RoutingDecision
    replies: list[Message] = field(default_factory=list)
    streamed: bool = False
    error: Exception | None = None

    @property
    def strategy(self) -> Strategy:
        return self.decision.strategy

    @property
    def ok(self) -> bool:
        return self.error is None
