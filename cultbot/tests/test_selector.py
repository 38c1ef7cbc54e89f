from __future__ import annotations

from typing import Any

import pytest

from cultbot.domain import FormatError
from cultbot.selector import parse_schedule, select_candidates


def _offering(id_: int, workout_id: int, state: str = "AVAILABLE") -> dict[str, Any]:
    return {
        "id": id_,
        "workoutId": workout_id,
        "state": state,
        "startTime": "07:00:00",
        "endTime": "07:50:00",
    }


def _response(classes: list[dict[str, Any]], *, slot: str = "07:00:00", center_id: int = 42) -> dict[str, Any]:
    # Earlier date has a different layout on purpose: only the last date is used.
    return {
        "days": [{"id": "2024-05-01"}, {"id": "2024-05-02"}],
        "classByDateMap": {
            "2024-05-01": {
                "classByTimeList": [
                    {"id": slot, "centerWiseClasses": [{"centerId": center_id, "classes": [_offering(1, 9)]}]},
                ],
            },
            "2024-05-02": {
                "classByTimeList": [
                    {"id": "06:00:00", "centerWiseClasses": [{"centerId": center_id, "classes": [_offering(2, 37)]}]},
                    {
                        "id": slot,
                        "centerWiseClasses": [
                            {"centerId": 7, "classes": [_offering(3, 37)]},
                            {"centerId": center_id, "classes": classes},
                        ],
                    },
                ],
            },
        },
    }


def _select(raw: Any, *, preferred: list[str] | None = None, slot: str = "07:00:00", center_id: str = "42"):
    return select_candidates(
        parse_schedule(raw),
        center_id=center_id,
        slot=slot,
        preferred_workout_ids=preferred or ["37", "9"],
    )


def test_candidates_follow_preference_order_not_provider_order() -> None:
    raw = _response([_offering(100, 9), _offering(200, 37)])

    candidates = _select(raw, preferred=["37", "9"])
    assert [c.workout_id for c in candidates] == ["37", "9"]
    assert [c.activity_id for c in candidates] == ["200", "100"]
    assert [c.rank for c in candidates] == [0, 1]


def test_same_workout_keeps_provider_order() -> None:
    raw = _response([_offering(1, 9), _offering(2, 37), _offering(3, 9), _offering(4, 37)])

    candidates = _select(raw, preferred=["37", "9"])
    assert [c.activity_id for c in candidates] == ["2", "4", "1", "3"]


@pytest.mark.parametrize("state", ["FULL", "WAITLIST_AVAILABLE", "available", "BOOKED"])
def test_non_available_classes_are_excluded(state: str) -> None:
    raw = _response([_offering(1, 37, state=state), _offering(2, 9)])

    candidates = _select(raw)
    assert [c.activity_id for c in candidates] == ["2"]


def test_workouts_outside_preference_are_excluded() -> None:
    raw = _response([_offering(1, 5), _offering(2, 9)])
    assert [c.activity_id for c in _select(raw)] == ["2"]


def test_candidate_carries_timing_and_state() -> None:
    (candidate,) = _select(_response([_offering(1, 37)]))
    assert candidate.state == "AVAILABLE"
    assert candidate.start_time == "07:00:00"
    assert candidate.end_time == "07:50:00"


def test_uses_last_date() -> None:
    # The only AVAILABLE 07:00 class on the first date is workout 9; last date has nothing.
    assert _select(_response([])) == []


def test_missing_slot_returns_empty_list() -> None:
    assert _select(_response([_offering(1, 37)]), slot="21:00:00") == []


def test_missing_center_returns_empty_list() -> None:
    assert _select(_response([_offering(1, 37)]), center_id="999") == []


def test_ids_are_compared_as_strings() -> None:
    raw = _response([_offering(1, 37)], center_id=42)
    assert len(_select(raw, center_id="42", preferred=["37"])) == 1


def test_empty_days_is_format_error() -> None:
    raw = {"days": [], "classByDateMap": {}}
    with pytest.raises(FormatError):
        _select(raw)


@pytest.mark.parametrize(
    "raw",
    [
        {"classByDateMap": {}},
        {"days": [{"id": "2024-05-01"}]},
        {"days": "2024-05-01", "classByDateMap": {}},
        "<html>Service Unavailable</html>",
        None,
    ],
)
def test_bad_document_shape_is_format_error(raw: Any) -> None:
    with pytest.raises(FormatError):
        parse_schedule(raw)


def test_last_day_without_id_is_format_error() -> None:
    raw = {"days": [{"id": "2024-05-01"}, {}], "classByDateMap": {}}
    with pytest.raises(FormatError, match="latest bookable date"):
        _select(raw)


def test_active_date_without_time_list_is_format_error() -> None:
    raw = {"days": [{"id": "2024-05-01"}], "classByDateMap": {"2024-05-01": {}}}
    with pytest.raises(FormatError, match="No classByTimeList for date=2024-05-01"):
        _select(raw)


def test_active_date_missing_from_map_is_format_error() -> None:
    raw = {"days": [{"id": "2024-05-02"}], "classByDateMap": {"2024-05-01": {"classByTimeList": []}}}
    with pytest.raises(FormatError):
        _select(raw)


def test_other_days_without_time_list_are_tolerated() -> None:
    raw = _response([_offering(1, 37)])
    raw["classByDateMap"]["2024-05-01"] = {}
    assert len(_select(raw)) == 1


def test_non_list_classes_is_format_error() -> None:
    raw = _response([])
    raw["classByDateMap"]["2024-05-02"]["classByTimeList"][1]["centerWiseClasses"][1]["classes"] = {"id": 1}
    with pytest.raises(FormatError, match="is not a list"):
        _select(raw)


def test_selection_does_not_mutate_response() -> None:
    classes = [_offering(100, 9), _offering(200, 37)]
    raw = _response(classes)

    _select(raw)
    assert [c["id"] for c in classes] == [100, 200]


def test_broken_day_other_than_last_is_ignored() -> None:
    raw = _response([_offering(1, 37)])
    raw["classByDateMap"]["2024-05-01"] = None
    assert [c.activity_id for c in _select(raw)] == ["1"]


def test_broken_sibling_time_block_is_ignored() -> None:
    raw = _response([_offering(1, 37)])
    time_list = raw["classByDateMap"]["2024-05-02"]["classByTimeList"]
    time_list[0] = {"id": "06:00:00", "centerWiseClasses": {"oops": 1}}
    time_list.insert(0, None)
    assert [c.activity_id for c in _select(raw)] == ["1"]


def test_broken_sibling_center_is_ignored() -> None:
    raw = _response([_offering(1, 37)])
    centers = raw["classByDateMap"]["2024-05-02"]["classByTimeList"][1]["centerWiseClasses"]
    centers[0] = {"centerId": 7, "classes": "not a list"}
    assert [c.activity_id for c in _select(raw)] == ["1"]


def test_broken_matching_time_block_is_format_error() -> None:
    raw = _response([])
    raw["classByDateMap"]["2024-05-02"]["classByTimeList"][1]["centerWiseClasses"] = {"oops": 1}
    with pytest.raises(FormatError, match="centerWiseClasses is not a list"):
        _select(raw)


def test_non_object_active_day_is_format_error() -> None:
    raw = {"days": [{"id": "2024-05-01"}], "classByDateMap": {"2024-05-01": None}}
    with pytest.raises(FormatError, match="No classByTimeList for date=2024-05-01"):
        _select(raw)


@pytest.mark.parametrize("day_id", [0, "", None])
def test_falsy_last_day_id_is_format_error(day_id: Any) -> None:
    raw = {"days": [{"id": "2024-05-01"}, {"id": day_id}], "classByDateMap": {"0": {"classByTimeList": []}}}
    with pytest.raises(FormatError, match="latest bookable date"):
        _select(raw)
