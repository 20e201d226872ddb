from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, Integer, Text, ForeignKey, JSON
from app.core.base import Base, TimestampedMixin

# ---- Teams ----

class Team(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    team_lead_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    escalation_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sla_hours: Mapped[int] = mapped_column(Integer, default=24)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

class TeamMember(Base, TimestampedMixin):
    team_id: Mapped[str] = mapped_column(ForeignKey("team.id"), index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(50), default="staff")
    skills: Mapped[list | None] = mapped_column(JSON, nullable=True)  # ["billing", "memberships"]
    availability: Mapped[str] = mapped_column(String(16), default="available")  # available, busy, away, offline
    max_active_tickets: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None -> settings default
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
