from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, Float, TIMESTAMP, text, JSON, Sequence
from app.core.base import Base, TimestampedMixin

DONE_STATUSES = ("resolved", "closed")

# Source of TKT-nnnnnn ticket numbers
TICKET_NUMBER_SEQ = Sequence("ticket_number_seq", metadata=Base.metadata)

# ---- Tickets ----

class Ticket(Base, TimestampedMixin):
    ticket_number: Mapped[str] = mapped_column(String(50), unique=True)
    studio_id: Mapped[str] = mapped_column(String(64), index=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)  # billing, technical, general-inquiry, ...
    subcategory: Mapped[str | None] = mapped_column(String(64), nullable=True)
    priority: Mapped[str] = mapped_column(String(16), default="medium", index=True)  # low, medium, high, critical
    status: Mapped[str] = mapped_column(String(32), default="new", index=True)  # new, open, in_progress, pending_customer, escalated, reopened, resolved, closed

    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    client_mood: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sentiment: Mapped[str | None] = mapped_column(String(16), nullable=True)  # positive, negative, neutral
    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)

    # Routing / assignment outcome
    assigned_team_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    assigned_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    routing_rule_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    routing_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    resolved_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

# ---- Assignments ----

class Assignment(Base, TimestampedMixin):
    ticket_id: Mapped[str] = mapped_column(ForeignKey("ticket.id"), index=True)
    assignee_id: Mapped[str] = mapped_column(String(64))
    team_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    strategy: Mapped[str | None] = mapped_column(String(32), nullable=True)  # round-robin, least-loaded, skill-based, balanced, rule
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
