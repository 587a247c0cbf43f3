from datetime import datetime, timezone

import pytest

from app.services.course_transform import (
    CourseDataError,
    course_par,
    extract_course_payload,
    has_complete_data,
    poi_feature_count,
    tee_total_distance,
    transform_coordinates,
    transform_course,
)

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def raw_course(**overrides):
    course = {
        "courseID": 987,
        "courseName": "Lakeside",
        "clubName": "Lakeside Club",
        "city": "Austin",
        "state": "TX",
        "country": "USA",
        "numHoles": 9,
        "parsMen": [4, 3, 5, 4, 4, 3, 5, 4, 4],
        "indexesMen": [1, 9, 3, 5, 7, 8, 2, 4, 6],
        "parsWomen": [4, 3, 5, 4, 4, 3, 5, 4, 5],
        "tees": [
            {"teeName": "Blue", "length1": "410", "length2": 180, "length9": 400},
            {"teeID": 55, "teeName": "Gold", "teeColor": "#FFD700", "length1": 380},
        ],
    }
    course.update(overrides)
    return course


def test_extract_handles_nested_and_root_shapes():
    course = raw_course()
    assert extract_course_payload({"course": course}) is course
    assert extract_course_payload(course) is course
    assert extract_course_payload({"courses": []}) is None
    assert extract_course_payload(["not", "a", "dict"]) is None


def test_transform_course_columns():
    values = transform_course({"course": raw_course()}, NOW)

    assert values["name"] == "Lakeside"
    assert values["api_course_id"] == "987"
    assert values["location"] == "Austin, TX"
    assert values["num_holes"] == 9
    assert values["par"] == 36
    assert values["updated_at"] == NOW

    blue, gold = values["tees"]
    assert blue["id"] == "tee_1"
    assert blue["color"] == "#CCCCCC"
    assert blue["total_distance"] == 990
    assert gold["id"] == "55"
    assert gold["color"] == "#FFD700"

    assert len(values["holes"]) == 9
    first = values["holes"][0]
    assert first == {
        "number": 1,
        "par_men": 4,
        "par_women": 4,
        "index_men": 1,
        "index_women": None,
        "distances": {"blue": 410, "gold": 380},
    }
    # Tees without a length for a hole are left out of its distances.
    assert values["holes"][2]["distances"] == {}


def test_transform_course_location_skips_missing_parts():
    values = transform_course(raw_course(state=None), NOW)
    assert values["location"] == "Austin"


def test_transform_course_without_tees_is_rejected():
    with pytest.raises(CourseDataError):
        transform_course({"course": raw_course(tees=[])}, NOW)
    with pytest.raises(CourseDataError):
        transform_course({"message": "rate limited"}, NOW)


def test_transform_course_without_name_is_rejected():
    course = raw_course()
    del course["courseName"]
    with pytest.raises(CourseDataError):
        transform_course({"course": course}, NOW)


def test_par_and_distance_helpers():
    assert course_par(None, 18) == 72
    assert course_par([4] * 18, 9) == 36
    assert course_par(["x", None], 18) == 72
    assert tee_total_distance({"length1": 100, "length2": "200"}, 2) == 300
    assert tee_total_distance({}, 18) is None


def test_transform_coordinates_groups_by_hole():
    poi = transform_coordinates(
        {
            "coordinates": [
                {"holeNumber": 3, "type": "tee", "name": "White", "latitude": 1, "longitude": 2},
                {"holeNumber": 1, "type": "green_back", "latitude": "10.5", "longitude": "20.5"},
                {"holeNumber": 1, "type": "bunker_left", "latitude": 1, "longitude": 1},
                {"holeNumber": 1, "type": "greenside_bunker", "latitude": 1, "longitude": 1},
                {"holeNumber": 1, "type": "lateral_hazard", "latitude": 1, "longitude": 1},
                {"holeNumber": 1, "type": "cart_path", "latitude": 1, "longitude": 1},
                {"holeNumber": 2, "type": "green", "latitude": None, "longitude": 1},
            ]
        }
    )

    assert [h["hole"] for h in poi] == [1, 3]
    hole1 = poi[0]
    assert hole1["greens"] == [{"lat": 10.5, "lng": 20.5, "location": "back"}]
    assert hole1["bunkers"] == [
        {"lat": 1.0, "lng": 1.0, "side": "left"},
        {"lat": 1.0, "lng": 1.0, "side": "center", "location": "greenside"},
    ]
    assert hole1["hazards"] == [{"lat": 1.0, "lng": 1.0, "type": "lateral"}]
    assert poi[1]["tees"] == [{"lat": 1.0, "lng": 2.0, "name": "white"}]
    assert poi_feature_count(poi) == 5


def test_transform_coordinates_rejects_unusable_payloads():
    with pytest.raises(CourseDataError):
        transform_coordinates({"coordinates": "nope"})
    with pytest.raises(CourseDataError):
        transform_coordinates({"coordinates": [{"holeNumber": 1, "type": "green"}]})


def test_feature_count_and_completeness():
    assert poi_feature_count(None) == 0
    assert poi_feature_count([]) == 0

    class Row:
        tees = [{"id": "t1"}]
        holes = []

    assert has_complete_data(Row()) is False
    Row.holes = [{"number": 1}]
    assert has_complete_data(Row()) is True
