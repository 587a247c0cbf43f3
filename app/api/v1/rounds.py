import logging
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload, selectinload

from app.api.deps import ensure_player, get_current_user_id, get_db
from app.models.course import Course
from app.models.round import Round, RoundHole
from app.services.shots import DEFAULT_HOLES

logger = logging.getLogger(__name__)

router = APIRouter()

ShotType = Literal["Tee Shot", "Long Shot", "Approach", "Chip", "Putts", "Sand", "Penalties"]
Outcome = Literal["On Target", "Slightly Off", "Recovery Needed"]


class ShotIn(BaseModel):
    type: ShotType
    result: Outcome
    timestamp: str | None = None


class HoleDataIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    par: int | None = Field(default=None, ge=1, le=10)
    distance: int | None = Field(default=None, ge=0, le=2000)
    index: int | None = Field(default=None, ge=1, le=18)
    features: list[Any] = []
    shots: list[ShotIn] = []
    poi: dict[str, Any] | None = None


class HoleSaveIn(BaseModel):
    hole_data: HoleDataIn
    total_score: int | None = Field(default=None, ge=0, le=30)


class RoundCreate(BaseModel):
    course_id: int
    tee_id: str | None = None
    tee_name: str | None = None


class RoundFinishIn(BaseModel):
    holes: dict[int, HoleDataIn] = {}


class RoundHoleOut(BaseModel):
    hole_number: int
    hole_data: dict[str, Any]
    total_score: int

    class Config:
        from_attributes = True


class RoundSummaryOut(BaseModel):
    id: int
    course_id: int
    course_name: str
    selected_tee_name: str | None
    started_at: datetime
    completed_at: datetime | None
    is_complete: bool
    gross_shots: int | None


class RoundOut(RoundSummaryOut):
    tee_id: str | None
    total_par: int | None
    holes: list[RoundHoleOut]


def _get_owned_round(db: Session, round_id: int, player_id: int) -> Round:
    rnd = db.execute(
        select(Round)
        .options(joinedload(Round.course), selectinload(Round.holes))
        .where(Round.id == round_id, Round.owner_player_id == player_id)
    ).scalars().unique().one_or_none()
    if not rnd:
        raise HTTPException(status_code=404, detail="Round not found")
    return rnd


def _hole_count(course: Course | None) -> int:
    if course and course.num_holes:
        return course.num_holes
    if course and isinstance(course.holes, list) and course.holes:
        return len(course.holes)
    return DEFAULT_HOLES


def _upsert_hole(rnd: Round, hole_number: int, hole_data: HoleDataIn, total_score: int | None) -> RoundHole:
    if not 1 <= hole_number <= _hole_count(rnd.course):
        raise HTTPException(status_code=400, detail="Invalid hole_number for course")

    data = hole_data.model_dump()
    score = total_score if total_score is not None else len(hole_data.shots)

    existing = next((h for h in rnd.holes if h.hole_number == hole_number), None)
    if existing:
        existing.hole_data = data
        existing.total_score = score
        return existing

    hole = RoundHole(hole_number=hole_number, hole_data=data, total_score=score)
    rnd.holes.append(hole)
    return hole


def _complete(rnd: Round) -> None:
    if not rnd.holes:
        raise HTTPException(status_code=400, detail="No hole data found for this round")
    rnd.gross_shots = sum(h.total_score for h in rnd.holes)
    rnd.completed_at = datetime.now(timezone.utc)


def _round_to_summary(rnd: Round) -> RoundSummaryOut:
    return RoundSummaryOut(
        id=rnd.id,
        course_id=rnd.course_id,
        course_name=rnd.course.name if rnd.course else "(deleted course)",
        selected_tee_name=rnd.selected_tee_name,
        started_at=rnd.started_at,
        completed_at=rnd.completed_at,
        is_complete=rnd.is_complete,
        gross_shots=rnd.gross_shots,
    )


def _round_to_out(rnd: Round) -> RoundOut:
    summary = _round_to_summary(rnd)
    return RoundOut(
        **summary.model_dump(),
        tee_id=rnd.tee_id,
        total_par=rnd.course.par if rnd.course else None,
        holes=[RoundHoleOut.model_validate(h) for h in rnd.holes],
    )


@router.post("/rounds", response_model=RoundOut, status_code=201)
def create_round(
    payload: RoundCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    owner = ensure_player(db, user_id)

    course = db.get(Course, payload.course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    tee_name = (payload.tee_name or "").strip() or None
    if payload.tee_id and course.tees:
        tee = next((t for t in course.tees if str(t.get("id")) == payload.tee_id), None)
        if tee is None:
            raise HTTPException(status_code=400, detail="Invalid tee_id for course")
        tee_name = tee_name or tee.get("name")

    rnd = Round(
        owner_player_id=owner.id,
        course_id=course.id,
        tee_id=payload.tee_id,
        selected_tee_name=tee_name,
    )
    db.add(rnd)
    db.commit()
    logger.info("Round %s started on course %s by %s", rnd.id, course.id, user_id)

    return _round_to_out(_get_owned_round(db, rnd.id, owner.id))


@router.get("/rounds", response_model=list[RoundSummaryOut])
def list_rounds(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    player = ensure_player(db, user_id)
    rounds = db.execute(
        select(Round)
        .options(joinedload(Round.course))
        .where(Round.owner_player_id == player.id)
        .order_by(Round.started_at.desc(), Round.id.desc())
    ).scalars().unique().all()
    return [_round_to_summary(r) for r in rounds]


@router.get("/rounds/{round_id}", response_model=RoundOut)
def get_round(
    round_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    player = ensure_player(db, user_id)
    return _round_to_out(_get_owned_round(db, round_id, player.id))


@router.put("/rounds/{round_id}/holes/{hole_number}", response_model=RoundHoleOut)
def save_hole(
    round_id: int,
    hole_number: int,
    payload: HoleSaveIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    player = ensure_player(db, user_id)
    rnd = _get_owned_round(db, round_id, player.id)
    if rnd.is_complete:
        raise HTTPException(status_code=409, detail="Round already completed")

    hole = _upsert_hole(rnd, hole_number, payload.hole_data, payload.total_score)
    db.commit()
    db.refresh(hole)
    return hole


@router.post("/rounds/{round_id}/finish", response_model=RoundOut)
def finish_round(
    round_id: int,
    payload: RoundFinishIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Save every tracked hole in one go and mark the round complete."""
    player = ensure_player(db, user_id)
    rnd = _get_owned_round(db, round_id, player.id)
    if rnd.is_complete:
        raise HTTPException(status_code=409, detail="Round already completed")

    for hole_number in sorted(payload.holes):
        hole_data = payload.holes[hole_number]
        if not hole_data.shots:
            continue
        _upsert_hole(rnd, hole_number, hole_data, None)

    _complete(rnd)
    db.commit()
    logger.info("Round %s finished with %s shots", rnd.id, rnd.gross_shots)

    return _round_to_out(_get_owned_round(db, round_id, player.id))


@router.post("/rounds/{round_id}/complete", response_model=RoundOut)
def complete_round(
    round_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    player = ensure_player(db, user_id)
    rnd = _get_owned_round(db, round_id, player.id)
    if rnd.is_complete:
        raise HTTPException(status_code=409, detail="Round already completed")

    _complete(rnd)
    db.commit()
    return _round_to_out(_get_owned_round(db, round_id, player.id))


@router.delete("/rounds/{round_id}")
def delete_round(
    round_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    player = ensure_player(db, user_id)
    rnd = _get_owned_round(db, round_id, player.id)
    if rnd.is_complete:
        raise HTTPException(status_code=409, detail="Cannot delete a completed round")

    db.delete(rnd)
    db.commit()
    return {"ok": True}
