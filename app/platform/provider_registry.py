from app.core.config import Settings
from app.modules.assignment.engine import AssignmentEngine
from app.modules.routing.engine import RoutingEngine
from app.modules.routing.rules import RulesManager
from app.modules.routing.sentiment import FixedSentimentScorer, TicketFieldSentimentScorer
from app.platform.ports.directory import MetricsSourcePort, TeamDirectoryPort
from app.platform.ports.event_bus import EventBusPort
from app.platform.ports.routing import SentimentScorerPort
from app.platform.adapters.bus_noop import NoopEventBus
from app.platform.adapters.bus_redis import RedisEventBus
from app.platform.adapters.directory_memory import InMemoryDirectory

class ProviderRegistry:
    """Builds adapters and engines from settings, once per process.

    One instance is created by the application at startup and kept on
    ``app.state``; tests build engines directly with fakes instead.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._event_bus: EventBusPort | None = None
        self._directory: TeamDirectoryPort | None = None
        self._metrics: MetricsSourcePort | None = None
        self._rules: RulesManager | None = None
        self._routing: RoutingEngine | None = None
        self._assignment: AssignmentEngine | None = None

    def event_bus(self) -> EventBusPort:
        if self._event_bus is None:
            prov = (self.settings.EVENT_BUS_PROVIDER or "noop").lower()
            if prov == "redis":
                self._event_bus = RedisEventBus(
                    self.settings.REDIS_URL, self.settings.REDIS_STREAM, self.settings.REDIS_STREAM_MAXLEN
                )
            else:
                self._event_bus = NoopEventBus()
        return self._event_bus

    def _build_directory(self) -> None:
        if self.settings.DIRECTORY_PROVIDER == "postgres":
            from app.core.db import SessionLocal
            from app.platform.adapters.directory_sql import SqlMetricsSource, SqlTeamDirectory
            self._directory = SqlTeamDirectory(SessionLocal)
            self._metrics = SqlMetricsSource(SessionLocal, self.settings.DEFAULT_MAX_ACTIVE_TICKETS)
        else:
            directory = InMemoryDirectory()
            self._directory = directory
            self._metrics = directory

    def team_directory(self) -> TeamDirectoryPort:
        if self._directory is None:
            self._build_directory()
        return self._directory

    def metrics_source(self) -> MetricsSourcePort:
        if self._metrics is None:
            self._build_directory()
        return self._metrics

    def sentiment_scorer(self) -> SentimentScorerPort:
        if self.settings.SENTIMENT_SCORING == "ticket_field":
            return TicketFieldSentimentScorer()
        return FixedSentimentScorer(self.settings.SENTIMENT_FIXED_SCORE)

    def rules_manager(self) -> RulesManager:
        if self._rules is None:
            self._rules = RulesManager()
            # postgres-backed rules are hydrated (and seeded) at startup instead
            if self.settings.RULES_PROVIDER == "memory" and self.settings.SEED_DEFAULT_RULES:
                self._rules.install_defaults()
        return self._rules

    def routing_engine(self) -> RoutingEngine:
        if self._routing is None:
            rules = self.rules_manager()
            self._routing = RoutingEngine(
                rules,
                rules,
                sentiment=self.sentiment_scorer(),
                cache_ttl_seconds=self.settings.RULES_CACHE_TTL_SECONDS,
                catch_all_score=self.settings.ROUTING_CATCH_ALL_SCORE,
            )
        return self._routing

    def assignment_engine(self) -> AssignmentEngine:
        if self._assignment is None:
            self._assignment = AssignmentEngine(
                self.team_directory(),
                self.metrics_source(),
                cache_ttl_seconds=self.settings.METRICS_CACHE_TTL_SECONDS,
            )
        return self._assignment
