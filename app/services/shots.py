"""Shot vocabulary shared by the tracker, round storage and insights."""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)

SHOT_TYPES = ("Tee Shot", "Long Shot", "Approach", "Chip", "Putts", "Sand", "Penalties")
OUTCOMES = ("On Target", "Slightly Off", "Recovery Needed")

DEFAULT_HOLES = 18


def empty_shot_counts() -> dict[str, dict[str, int]]:
    return {t: {o: 0 for o in OUTCOMES} for t in SHOT_TYPES}


def count_shots(
    shots: Iterable[dict[str, Any]],
    counts: dict[str, dict[str, int]] | None = None,
) -> dict[str, dict[str, int]]:
    """Tally shots into a type x outcome matrix.

    Shots with an unknown type or outcome are logged and left out.
    """
    if counts is None:
        counts = empty_shot_counts()
    for shot in shots:
        shot_type = shot.get("type")
        result = shot.get("result")
        if shot_type in counts and result in counts[shot_type]:
            counts[shot_type][result] += 1
        else:
            logger.warning("Unexpected shot data type=%s result=%s", shot_type, result)
    return counts


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        # Clients send JavaScript-style ISO strings ending in "Z".
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def hole_time_info(hole_number: int, shots: Iterable[dict[str, Any]]) -> dict[str, Any]:
    stamps = [
        ts.timestamp() * 1000
        for ts in (parse_timestamp(s.get("timestamp")) for s in shots)
        if ts is not None
    ]
    start = min(stamps) if stamps else None
    end = max(stamps) if stamps else None
    duration = (end - start) / 1000 / 60 if len(stamps) >= 2 else None
    return {
        "startTime": start,
        "endTime": end,
        "duration": duration,
        "sequenceInRound": hole_number,
    }


def score_to_par_label(strokes: int, par: int | None) -> str:
    diff = strokes - (par or 0)
    if diff == 0:
        return "Par"
    if diff > 0:
        return f"+{diff}"
    return str(diff)
