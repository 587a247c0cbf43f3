"""Coaching insights built from a player's recent completed rounds."""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.settings import settings
from app.models.insight import Insight
from app.models.player import Player
from app.models.round import Round
from app.services.course_transform import DEFAULT_PAR
from app.services.shots import count_shots, empty_shot_counts, hole_time_info

logger = logging.getLogger(__name__)


class Coach(Protocol):
    def complete(self, prompt: str) -> str: ...


class InsightsUnavailable(Exception):
    pass


PROMPT_HEADER = """You are a professional golf coach writing premium insights for a subscriber. \
Give personalised, specific and actionable advice that helps them improve, going beyond a basic \
summary of the numbers.

Below is data from {total_rounds} recent rounds. Each round has shot-by-shot records (shot type, \
outcome, timestamp) and, where available, course layout and point-of-interest data per hole.

Look at the data along these dimensions:

1. SHOT SEQUENCES: how one shot sets up the next, which sequences repeatedly cost strokes, and how \
recovery shots compound across holes.
2. COURSE CONTEXT: relate performance to specific holes, hazards and layouts when that data exists.
3. TIMING: early versus late round performance, signs of fatigue or lapses in concentration, \
round duration.
4. PROGRESSION: a forward-looking plan with concrete practice routines for the issues you find.
5. CAUSES: reasonable inferences about root causes (for example three-putts that follow poor \
approaches).

Stay grounded in the data. Make reasonable inferences but do not invent techniques or details the \
data does not support. Be specific and concise and focus on what would save the most strokes.

Reply with a single JSON object and nothing else, using these fields:
{{
  "summary": "2-3 sentence overview of the player's game across the analysed rounds",
  "primaryIssue": "The one area consistently costing the most strokes (1 sentence)",
  "reason": "Why this issue is costly given the sequence of shots in a hole or round (2-3 sentences)",
  "practiceFocus": "A specific practice recommendation based on patterns across rounds",
  "managementTip": "One course management tip addressing the primary issue",
  "progress": "Improvement trends across the analysed rounds, or null if there is no clear trend"
}}"""

# (json field, card id, title, icon, variant) in display order.
INSIGHT_CARDS = (
    ("summary", "summary", "Performance Summary", "analytics-outline", "highlight"),
    ("primaryIssue", "primary-issue", "Primary Issue", "warning-outline", "alert"),
    ("reason", "root-cause", "Root Cause Analysis", "information-circle-outline", "standard"),
    ("practiceFocus", "practice-focus", "Practice Focus", "basketball-outline", "success"),
    ("managementTip", "management-tip", "Management Tip", "bulb-outline", "standard"),
    ("progress", "progress", "Your Progress", "trending-up-outline", "success"),
)

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
_FENCED = re.compile(r"```\s*([\s\S]*?)\s*```")


def _as_utc(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


def build_round_summary(rnd: Round) -> dict[str, Any]:
    course = rnd.course
    shot_counts = empty_shot_counts()
    hole_details = []

    for hole in rnd.holes:
        data = hole.hole_data or {}
        shots = data.get("shots")
        if not isinstance(shots, list):
            logger.warning("Missing or invalid hole_data for hole %s in round %s", hole.hole_number, rnd.id)
            continue

        hole_details.append(
            {
                "holeNumber": hole.hole_number,
                "par": data.get("par"),
                "distance": data.get("distance"),
                "index": data.get("index"),
                "features": data.get("features") or [],
                "totalShots": hole.total_score or len(shots),
                "shots": shots,
                "timeInfo": hole_time_info(hole.hole_number, shots),
                "poi": data.get("poi"),
            }
        )
        count_shots(shots, shot_counts)

    played_at = _as_utc(rnd.started_at)
    course_name = course.name if course else "Unknown Course"
    return {
        "roundId": rnd.id,
        "date": played_at.date().isoformat(),
        "time": played_at.strftime("%H:%M:%S"),
        "timestamp": int(played_at.timestamp() * 1000),
        "totalScore": rnd.gross_shots,
        "par": (course.par if course else None) or DEFAULT_PAR,
        "teeName": rnd.selected_tee_name or "Unknown",
        "shots": shot_counts,
        "holeDetails": hole_details,
        "courseName": course_name,
        "courseInfo": {
            "name": course_name,
            "clubName": course.club_name if course else None,
            "location": course.location if course else None,
            "country": course.country if course else None,
            "holes": course.holes if course and isinstance(course.holes, list) else None,
        },
    }


def build_prompt(golf_data: dict[str, Any]) -> str:
    header = PROMPT_HEADER.format(total_rounds=golf_data["totalRounds"])
    return f"{header}\n\nGolf rounds data: {json.dumps(golf_data)}"


def parse_coach_reply(text: str) -> dict[str, Any]:
    """Extract the JSON object from the reply, with or without markdown fences.

    Raises ValueError when no JSON object can be read.
    """
    match = _FENCED_JSON.search(text) or _FENCED.search(text)
    payload = match.group(1) if match else text
    parsed = json.loads(payload)
    if not isinstance(parsed, dict):
        raise ValueError("coach reply is not a JSON object")
    return parsed


def to_tiered_insights(parsed: dict[str, Any]) -> dict[str, Any]:
    cards = []
    for field, card_id, title, icon, variant in INSIGHT_CARDS:
        content = parsed.get(field)
        # The summary card is always shown; the rest only when the coach filled them in.
        if field != "summary" and (not content or content == "null"):
            continue
        cards.append(
            {"id": card_id, "title": title, "content": content, "iconName": icon, "variant": variant}
        )
    return {"summary": parsed.get("summary"), "tieredInsights": cards}


def recent_completed_rounds(db: Session, player_id: int, limit: int) -> list[Round]:
    return db.execute(
        select(Round)
        .options(joinedload(Round.course), selectinload(Round.holes))
        .where(Round.owner_player_id == player_id, Round.completed_at.isnot(None))
        .order_by(Round.completed_at.desc(), Round.id.desc())
        .limit(limit)
    ).scalars().unique().all()


def generate_insights(
    db: Session,
    coach: Coach,
    player: Player,
    round_id: int | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    rounds = recent_completed_rounds(db, player.id, limit or settings.INSIGHTS_ROUND_LIMIT)
    if not rounds:
        raise InsightsUnavailable("No completed rounds found. Please complete a round first.")

    round_ids = [r.id for r in rounds]
    summaries = [build_round_summary(r) for r in rounds]
    golf_data = {"rounds": summaries, "totalRounds": len(summaries)}
    logger.info(
        "Analysing %d rounds with %d holes for player %s",
        len(summaries),
        sum(len(s["holeDetails"]) for s in summaries),
        player.external_id,
    )

    reply = coach.complete(build_prompt(golf_data))
    generated_at = datetime.now(timezone.utc).isoformat()

    try:
        insights = to_tiered_insights(parse_coach_reply(reply))
    except ValueError as exc:
        logger.error("Failed to parse coach reply as JSON: %s", exc)
        insights = {"error": "Failed to parse as JSON", "rawResponse": reply}
    insights["analyzedRounds"] = round_ids
    insights["generatedAt"] = generated_at

    insight_id = None
    try:
        row = Insight(player_id=player.id, round_id=round_id, insights=insights)
        db.add(row)
        db.commit()
        insight_id = row.id
        logger.info("Stored insights %s for player %s", insight_id, player.external_id)
    except SQLAlchemyError:
        # The caller still gets the generated insights.
        db.rollback()
        logger.exception("Failed to store insights")

    return {
        "message": "Golf insights generated successfully",
        "insights": insights,
        "insightsId": insight_id,
        "analyzedRounds": round_ids,
        "timestamp": generated_at,
    }


def latest_insight(db: Session, player_id: int) -> Insight | None:
    return db.execute(
        select(Insight)
        .where(Insight.player_id == player_id)
        .order_by(Insight.created_at.desc(), Insight.id.desc())
        .limit(1)
    ).scalars().first()
