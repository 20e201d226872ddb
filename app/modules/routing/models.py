from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Float, ForeignKey, JSON
from app.core.base import Base, TimestampedMixin

# ---- Routing rules ----

class RoutingRuleRow(Base, TimestampedMixin):
    __tablename__ = "routingrule"
    name: Mapped[str] = mapped_column(String(255))
    priority: Mapped[int] = mapped_column(Integer, default=50, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    conditions: Mapped[list] = mapped_column(JSON, default=list)  # [{"field","operator","value"}]
    action: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # {"type","target_id","metadata"}

class RoutingFeedbackRow(Base, TimestampedMixin):
    __tablename__ = "routingfeedback"
    rule_id: Mapped[str] = mapped_column(ForeignKey("routingrule.id"), index=True)
    ticket_id: Mapped[str] = mapped_column(String(64))
    was_correct: Mapped[bool] = mapped_column(Boolean)
    actual_team_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    score: Mapped[float] = mapped_column(Float, default=0.0)
