from typing import Protocol, runtime_checkable
from app.modules.routing.schemas import RoutingCondition, RoutingFeedback, RoutingRule, TicketSnapshot

@runtime_checkable
class RuleSourcePort(Protocol):
    async def load_active_rules(self) -> list[RoutingRule]: ...

@runtime_checkable
class FeedbackSinkPort(Protocol):
    async def append_feedback(self, feedback: RoutingFeedback) -> RoutingFeedback | None: ...

@runtime_checkable
class SentimentScorerPort(Protocol):
    def score(self, condition: RoutingCondition, ticket: TicketSnapshot, content: str) -> float: ...
