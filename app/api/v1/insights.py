import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import ensure_player, get_coach, get_current_user_id, get_db, get_optional_user_id
from app.models.round import Round
from app.services.insights import Coach, InsightsUnavailable, generate_insights, latest_insight

logger = logging.getLogger(__name__)

router = APIRouter()


class AnalyzeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    round_id: int | None = Field(default=None, alias="roundId")


class InsightOut(BaseModel):
    id: int
    round_id: int | None
    created_at: datetime
    insights: dict[str, Any]

    class Config:
        from_attributes = True


async def read_analyze_body(request: Request) -> AnalyzeIn:
    """The body is optional; an unreadable one is treated as empty."""
    raw = await request.body()
    if not raw.strip():
        return AnalyzeIn()
    try:
        return AnalyzeIn.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("No request body or invalid JSON: %s", exc.errors()[0].get("msg"))
        return AnalyzeIn()


@router.post("/insights/analyze")
def analyze_performance(
    payload: AnalyzeIn = Depends(read_analyze_body),
    db: Session = Depends(get_db),
    coach: Coach = Depends(get_coach),
    caller_id: str | None = Depends(get_optional_user_id),
):
    user_id = caller_id or payload.user_id
    if not user_id:
        raise HTTPException(
            status_code=400, detail="Unable to determine user ID. Please ensure you're logged in."
        )

    player = ensure_player(db, user_id)

    if payload.round_id is not None:
        owned = db.execute(
            select(Round.id).where(Round.id == payload.round_id, Round.owner_player_id == player.id)
        ).first()
        if not owned:
            raise HTTPException(status_code=404, detail="Round not found")

    try:
        return generate_insights(db, coach, player, round_id=payload.round_id)
    except InsightsUnavailable as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/insights/latest", response_model=InsightOut)
def get_latest_insights(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    player = ensure_player(db, user_id)
    insight = latest_insight(db, player.id)
    if not insight:
        raise HTTPException(status_code=404, detail="No insights found")
    return insight
