from app.modules.routing.matching import match_field
from app.modules.routing.schemas import RoutingCondition, TicketSnapshot
from app.platform.ports.routing import SentimentScorerPort

class FixedSentimentScorer(SentimentScorerPort):
    """Scores every sentiment condition with the same constant.

    This is the behavior the routing rules were tuned against while no
    sentiment classifier is wired in.
    """

    def __init__(self, value: float = 0.5):
        self.value = value

    def score(self, condition: RoutingCondition, ticket: TicketSnapshot, content: str) -> float:
        return self.value

class TicketFieldSentimentScorer(SentimentScorerPort):
    """Matches the condition against a sentiment label already stored on the ticket."""

    def __init__(self, matched_score: float = 1.0):
        self.matched_score = matched_score

    def score(self, condition: RoutingCondition, ticket: TicketSnapshot, content: str) -> float:
        return self.matched_score if match_field(ticket.sentiment, condition.value, condition.operator) else 0.0
