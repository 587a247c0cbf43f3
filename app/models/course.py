from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # Identifier of the course in the upstream golf data API.
    api_course_id: Mapped[str | None] = mapped_column(String(64), unique=True, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    club_name: Mapped[str | None] = mapped_column(String(200))
    location: Mapped[str | None] = mapped_column(String(200))
    country: Mapped[str | None] = mapped_column(String(100))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    num_holes: Mapped[int | None] = mapped_column(Integer)
    par: Mapped[int | None] = mapped_column(Integer)

    tees: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType)
    holes: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType)
    # None means coordinates were never requested; [] means requested, none available.
    poi: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    # Freshness of tee/hole data.
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # Freshness of the point-of-interest geometry.
    poi_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "api_course_id": self.api_course_id,
            "name": self.name,
            "club_name": self.club_name,
            "location": self.location,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "num_holes": self.num_holes,
            "par": self.par,
            "tees": self.tees,
            "holes": self.holes,
            "poi": self.poi,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "poi_updated_at": self.poi_updated_at,
        }
