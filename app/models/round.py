from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.course import JSONType


class Round(Base):
    __tablename__ = "rounds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    # Tees live in the course's JSON tee list, so these are not foreign keys.
    tee_id: Mapped[str | None] = mapped_column(String(64))
    selected_tee_name: Mapped[str | None] = mapped_column(String(64))

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    gross_shots: Mapped[int | None] = mapped_column(Integer)

    course = relationship("Course")
    owner = relationship("Player")
    holes: Mapped[list["RoundHole"]] = relationship(
        back_populates="round",
        cascade="all, delete-orphan",
        order_by="RoundHole.hole_number",
    )

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None


class RoundHole(Base):
    __tablename__ = "round_holes"
    __table_args__ = (
        UniqueConstraint("round_id", "hole_number", name="uq_round_hole_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    round_id: Mapped[int] = mapped_column(
        ForeignKey("rounds.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hole_number: Mapped[int] = mapped_column(Integer, nullable=False)
    # {par, distance, index, features, shots: [{type, result, timestamp}], poi}
    hole_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)

    round: Mapped["Round"] = relationship(back_populates="holes")
