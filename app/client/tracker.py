"""Hole-by-hole shot tracking for a round in progress.

State is kept per hole and persisted to the local store whenever the player
moves between holes, so a round survives the app being closed. Finishing the
round sends every tracked hole to the API in one request.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from app.client.api import ApiClientError, GolfTrackerApi
from app.client.store import LocalStore
from app.services.shots import DEFAULT_HOLES, OUTCOMES, SHOT_TYPES, count_shots, score_to_par_label

logger = logging.getLogger(__name__)

SELECTED_COURSE_KEY = "selectedCourse"
CURRENT_ROUND_KEY = "currentRound"


class TrackerError(Exception):
    pass


def holes_key(round_id: int) -> str:
    return f"round_{round_id}_holes"


def new_hole_state() -> dict[str, Any]:
    return {
        "par": None,
        "distance": None,
        "index": None,
        "features": [],
        "shots": [],
        "poi": None,
        "filled": False,
    }


class RoundTracker:
    def __init__(self, api: GolfTrackerApi, store: LocalStore, total_holes: int = DEFAULT_HOLES):
        self.api = api
        self.store = store
        self.total_holes = total_holes
        self.current_hole = 1
        self.holes: dict[int, dict[str, Any]] = {n: new_hole_state() for n in range(1, total_holes + 1)}
        self.round: dict[str, Any] | None = None
        self.course: dict[str, Any] | None = None
        self.course_details: dict[str, Any] | None = None

    @property
    def round_id(self) -> int:
        if not self.round:
            raise TrackerError("No round in progress")
        return self.round["id"]

    def start(self) -> dict[str, Any]:
        """Resume the stored round or create one for the selected course."""
        course = self.store.get_item(SELECTED_COURSE_KEY)
        if not course:
            raise TrackerError("No course selected. Cannot start a round.")
        self.course = course

        existing = self.store.get_item(CURRENT_ROUND_KEY)
        if existing:
            logger.info("Resuming round %s", existing.get("id"))
            self.round = existing
        else:
            self.round = self.api.create_round(course["id"], course.get("teeId"), course.get("teeName"))
            self.store.set_item(CURRENT_ROUND_KEY, self.round)
            logger.info("Started round %s on course %s", self.round["id"], course["id"])

        try:
            self.course_details = self.api.get_course_details(course["id"])
        except ApiClientError as exc:
            logger.error("Error fetching course details: %s", exc)

        self._load_holes()
        self._fill_hole_info(self.current_hole)
        return self.round

    def _load_holes(self) -> None:
        stored = self.store.get_item(holes_key(self.round_id)) or {}
        for number, data in stored.items():
            self.holes[int(number)] = data

    def _selected_tee_name(self) -> str | None:
        name = (self.round or {}).get("selected_tee_name") or (self.course or {}).get("teeName")
        return name.lower() if name else None

    def _hole_poi(self, number: int) -> dict[str, Any] | None:
        poi = (self.course_details or {}).get("poi") or (self.course or {}).get("poi")
        if not isinstance(poi, list):
            return None
        hole_poi = next((p for p in poi if p.get("hole") == number), None)
        if not hole_poi:
            return None
        return {key: hole_poi.get(key) or [] for key in ("greens", "bunkers", "hazards", "tees")}

    def _fill_hole_info(self, number: int) -> None:
        holes = (self.course_details or {}).get("holes") or []
        info = next((h for h in holes if h.get("number") == number), None)
        state = self.holes[number]
        # Only the first visit fills the hole in.
        if not info or state.get("filled"):
            return

        distances = info.get("distances") or {}
        tee = self._selected_tee_name()
        distance = distances.get(tee) if tee else None
        if distance is None and distances:
            distance = next(iter(distances.values()))

        state.update(
            par=info.get("par_men"),
            distance=distance,
            index=info.get("index_men"),
            features=info.get("features") or [],
            poi=self._hole_poi(number),
            filled=True,
        )

    def add_shot(self, shot_type: str, outcome: str) -> None:
        if shot_type not in SHOT_TYPES or outcome not in OUTCOMES:
            raise ValueError(f"Unknown shot {shot_type!r} / {outcome!r}")
        self.holes[self.current_hole]["shots"].append(
            {
                "type": shot_type,
                "result": outcome,
                "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            }
        )

    def remove_shot(self, shot_type: str, outcome: str) -> bool:
        """Remove the most recent shot of this type and outcome on the current hole."""
        shots = self.holes[self.current_hole]["shots"]
        for i in range(len(shots) - 1, -1, -1):
            if shots[i]["type"] == shot_type and shots[i]["result"] == outcome:
                del shots[i]
                return True
        return False

    def shot_counts(self, number: int | None = None) -> dict[str, dict[str, int]]:
        return count_shots(self.holes[number or self.current_hole]["shots"])

    def hole_score(self, number: int | None = None) -> int:
        return len(self.holes[number or self.current_hole]["shots"])

    def score_display(self) -> str:
        return score_to_par_label(self.hole_score(), self.holes[self.current_hole]["par"])

    def save_current_hole(self) -> None:
        key = holes_key(self.round_id)
        stored = self.store.get_item(key) or {}
        stored[str(self.current_hole)] = self.holes[self.current_hole]
        self.store.set_item(key, stored)

    def _move_to(self, number: int) -> None:
        self.save_current_hole()
        self.current_hole = number
        self._fill_hole_info(number)

    def next_hole(self) -> bool:
        """Advance one hole; False on the last hole, where the round should be finished."""
        if self.current_hole >= self.total_holes:
            return False
        self._move_to(self.current_hole + 1)
        return True

    def previous_hole(self) -> bool:
        if self.current_hole <= 1:
            return False
        self._move_to(self.current_hole - 1)
        return True

    def complete_hole(self) -> None:
        if self.current_hole < self.total_holes:
            self._move_to(self.current_hole + 1)
        else:
            self.save_current_hole()

    def finish(self) -> dict[str, Any]:
        """Save every hole with shots, complete the round and clear local state."""
        self.save_current_hole()
        stored = self.store.get_item(holes_key(self.round_id))
        if not stored:
            raise TrackerError("No hole data found for this round")

        holes = {}
        for number in range(1, self.total_holes + 1):
            data = stored.get(str(number))
            if not data or not data.get("shots"):
                continue
            holes[number] = {
                "par": data.get("par"),
                "distance": data.get("distance"),
                "index": data.get("index"),
                "features": data.get("features") or [],
                "shots": data["shots"],
                "poi": data.get("poi"),
            }

        completed = self.api.finish_round(self.round_id, holes)
        logger.info("Round %s completed", self.round_id)

        self.store.remove_item(holes_key(self.round_id))
        self.store.remove_item(CURRENT_ROUND_KEY)
        return completed
