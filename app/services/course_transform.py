"""Reshape golf data API payloads into the column shapes stored on `courses`.

There is one transformer per upstream endpoint; every handler goes through
these so the stored tee/hole/POI shapes never diverge.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PAR = 72
DEFAULT_NUM_HOLES = 18


class CourseDataError(ValueError):
    """The upstream payload cannot be turned into usable course data."""


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return None


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _at(values: Any, index: int) -> int | None:
    if not isinstance(values, list) or index >= len(values):
        return None
    return _to_int(values[index]) or None


def extract_course_payload(data: Any) -> dict[str, Any] | None:
    """Find the course object in either the nested or the root-level response shape."""
    if not isinstance(data, dict):
        return None
    nested = data.get("course")
    if isinstance(nested, dict):
        return nested
    if data.get("tees") and data.get("courseName"):
        return data
    return None


def tee_total_distance(tee: dict[str, Any], num_holes: int = DEFAULT_NUM_HOLES) -> int | None:
    total = sum(_to_int(tee.get(f"length{i}")) or 0 for i in range(1, num_holes + 1))
    return total or None


def course_par(pars: Any, num_holes: int) -> int:
    if not isinstance(pars, list):
        return DEFAULT_PAR
    total = sum(_to_int(p) or 0 for p in pars[:num_holes])
    return total or DEFAULT_PAR


def _transform_tees(raw_tees: list[dict[str, Any]], num_holes: int) -> list[dict[str, Any]]:
    tees = []
    for n, tee in enumerate(raw_tees, start=1):
        tees.append(
            {
                "id": str(tee.get("teeID") or f"tee_{n}"),
                "name": tee.get("teeName") or "Unnamed",
                "color": tee.get("teeColor") or "#CCCCCC",
                "slope_men": _to_float(tee.get("slopeMen")),
                "slope_women": _to_float(tee.get("slopeWomen")),
                "course_rating_men": _to_float(tee.get("courseRatingMen")),
                "course_rating_women": _to_float(tee.get("courseRatingWomen")),
                "total_distance": tee_total_distance(tee, num_holes),
            }
        )
    return tees


def _transform_holes(course: dict[str, Any], num_holes: int) -> list[dict[str, Any]]:
    raw_tees = [t for t in course.get("tees") or [] if isinstance(t, dict)]
    holes = []
    for number in range(1, num_holes + 1):
        distances = {}
        for tee in raw_tees:
            distance = _to_int(tee.get(f"length{number}"))
            if distance and tee.get("teeName"):
                distances[str(tee["teeName"]).lower()] = distance
        holes.append(
            {
                "number": number,
                "par_men": _at(course.get("parsMen"), number - 1),
                "par_women": _at(course.get("parsWomen"), number - 1),
                "index_men": _at(course.get("indexesMen"), number - 1),
                "index_women": _at(course.get("indexesWomen"), number - 1),
                "distances": distances,
            }
        )
    return holes


def transform_course(data: Any, now: datetime) -> dict[str, Any]:
    """Turn a `courses/{id}` response into `Course` column values.

    Raises CourseDataError when the response has no course, no tees, or the
    result is missing its name, par, tees or holes.
    """
    course = extract_course_payload(data)
    raw_tees = course.get("tees") if course else None
    if not course or not isinstance(raw_tees, list) or not raw_tees:
        keys = sorted(data) if isinstance(data, dict) else type(data).__name__
        logger.error("Golf API course response missing course/tee data (keys=%s)", keys)
        raise CourseDataError("API returned invalid course data structure")

    num_holes = _to_int(course.get("numHoles")) or DEFAULT_NUM_HOLES
    tees = _transform_tees([t for t in raw_tees if isinstance(t, dict)], num_holes)
    holes = _transform_holes(course, num_holes)

    location = ", ".join(p for p in (course.get("city"), course.get("state")) if p)
    api_course_id = course.get("courseID") or course.get("id")

    transformed = {
        "name": course.get("courseName") or course.get("name"),
        "api_course_id": str(api_course_id) if api_course_id is not None else None,
        "club_name": course.get("clubName") or "",
        "location": location,
        "country": course.get("country") or "",
        "latitude": _to_float(course.get("latitude")),
        "longitude": _to_float(course.get("longitude")),
        "num_holes": num_holes,
        "par": course_par(course.get("parsMen"), num_holes),
        "tees": tees,
        "holes": holes,
        "updated_at": now,
    }

    missing = [k for k in ("name", "par", "tees", "holes") if not transformed[k]]
    if missing:
        logger.error("Transformed course data is incomplete, missing: %s", ", ".join(missing))
        raise CourseDataError("API returned incomplete course data")

    return transformed


def _new_hole_poi(hole: int) -> dict[str, Any]:
    return {"hole": hole, "greens": [], "bunkers": [], "hazards": [], "tees": []}


GREEN_TYPES = {"green", "green_front", "green_center", "green_back"}
BUNKER_TYPES = {"bunker", "bunker_left", "bunker_right", "fairway_bunker", "greenside_bunker"}
HAZARD_TYPES = {"water", "water_hazard", "lateral_hazard", "hazard"}
TEE_TYPES = {"tee", "tee_box"}


def _classify(kind: str, point: dict[str, float], coord: dict[str, Any], hole_poi: dict) -> bool:
    if kind in GREEN_TYPES:
        location = "center"
        if "front" in kind:
            location = "front"
        elif "back" in kind:
            location = "back"
        hole_poi["greens"].append({**point, "location": location})
    elif kind in BUNKER_TYPES:
        side = "center"
        if "left" in kind:
            side = "left"
        elif "right" in kind:
            side = "right"
        bunker = {**point, "side": side}
        if "fairway" in kind:
            bunker["location"] = "fairway"
        elif "greenside" in kind:
            bunker["location"] = "greenside"
        hole_poi["bunkers"].append(bunker)
    elif kind in HAZARD_TYPES:
        hole_poi["hazards"].append({**point, "type": kind.replace("_hazard", "")})
    elif kind in TEE_TYPES:
        name = coord.get("name") or coord.get("color") or "default"
        hole_poi["tees"].append({**point, "name": str(name).lower()})
    else:
        return False
    return True


def transform_coordinates(data: Any) -> list[dict[str, Any]]:
    """Group a `coordinates/{id}` response into per-hole points of interest."""
    coordinates = data.get("coordinates") if isinstance(data, dict) else None
    if not isinstance(coordinates, list):
        raise CourseDataError("API returned invalid coordinates data structure")

    by_hole: dict[int, dict[str, Any]] = {}
    for coord in coordinates:
        if not isinstance(coord, dict):
            continue
        hole = _to_int(coord.get("holeNumber"))
        lat = _to_float(coord.get("latitude"))
        lng = _to_float(coord.get("longitude"))
        kind = coord.get("type")
        if not hole or lat is None or lng is None or not kind:
            logger.warning("Skipping invalid coordinate: %s", coord)
            continue

        hole_poi = by_hole.setdefault(hole, _new_hole_poi(hole))
        if not _classify(str(kind).lower(), {"lat": lat, "lng": lng}, coord, hole_poi):
            logger.warning("Unknown coordinate type: %s", kind)

    poi = [by_hole[h] for h in sorted(by_hole)]
    if not poi:
        raise CourseDataError("API returned unusable coordinate data")
    return poi


def poi_feature_count(poi: Iterable[dict[str, Any]] | None) -> int:
    if not poi:
        return 0
    return sum(
        len(hole.get(key) or [])
        for hole in poi
        for key in ("greens", "bunkers", "hazards", "tees")
    )


def has_tee_data(tees: Any) -> bool:
    return isinstance(tees, list) and len(tees) > 0


def has_hole_data(holes: Any) -> bool:
    return isinstance(holes, list) and len(holes) > 0


def has_complete_data(course: Any) -> bool:
    return has_tee_data(course.tees) and has_hole_data(course.holes)
