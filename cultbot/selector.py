"""Schedule parsing and slot selection.

The classes endpoint returns loosely shaped JSON:

    days[]                      ordered dates, each {"id": "2024-05-03", ...}
    classByDateMap[date]
      .classByTimeList[]        time blocks, {"id": "07:00:00", ...}
        .centerWiseClasses[]    {"centerId": 123, ...}
          .classes[]            {"id": ..., "workoutId": ..., "state": "AVAILABLE", ...}

parse_schedule() only checks the top level. select_candidates() then walks the
path to the requested class list (active date, matching time block, matching
center) and raises FormatError when something on that path has the wrong
shape. Days, blocks and centers off the path are never looked at, so a broken
entry elsewhere in the document does not stop a booking.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from cultbot.domain import AVAILABLE, Candidate, CenterClasses, ClassOffering, FormatError, ScheduleDocument


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _list_field(obj: Mapping[str, Any], key: str, where: str) -> list[Any]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise FormatError(f"Unexpected classes response format: {where}.{key} is not a list")
    return value


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise FormatError(f"Unexpected classes response format: {where} is not an object")
    return value


def _day_id(day: Any) -> str | None:
    # Falsy ids (missing, null, "", 0) can't identify a date.
    if not isinstance(day, Mapping) or not day.get("id"):
        return None
    return str(day["id"])


def _find_by(items: Iterable[Any], key: str, wanted: str) -> tuple[int, Mapping[str, Any]] | None:
    for i, item in enumerate(items):
        if isinstance(item, Mapping) and str(item.get(key)) == wanted:
            return i, item
    return None


def _parse_offering(raw: Any, where: str) -> ClassOffering:
    item = _mapping(raw, where)
    return ClassOffering(
        id=str(item.get("id")),
        workout_id=str(item.get("workoutId")),
        state=str(item.get("state")),
        start_time=_opt_str(item.get("startTime")),
        end_time=_opt_str(item.get("endTime")),
    )


def parse_schedule(raw: Any) -> ScheduleDocument:
    if not isinstance(raw, Mapping):
        raise FormatError(f"Unexpected classes response format: expected JSON object, got {type(raw).__name__}")

    days = raw.get("days")
    class_by_date = raw.get("classByDateMap")
    if not isinstance(days, list) or not isinstance(class_by_date, Mapping):
        raise FormatError("Unexpected classes response format: missing days/classByDateMap")

    return ScheduleDocument(
        days=tuple(_day_id(d) for d in days),
        classes_by_date={str(date): day for date, day in class_by_date.items()},
    )


def find_center_classes(schedule: ScheduleDocument, *, center_id: str, slot: str) -> CenterClasses | None:
    """Classes of one center in one time slot on the last (furthest out) date.

    None when the slot or the center is not offered on that date.
    """
    if not schedule.days:
        raise FormatError("Unexpected classes response format: days is empty")

    date = schedule.days[-1]
    if not date:
        raise FormatError("Could not determine latest bookable date from response")

    where = f"classByDateMap[{date}]"
    day = schedule.classes_by_date.get(date)
    if not isinstance(day, Mapping) or day.get("classByTimeList") is None:
        raise FormatError(f"No classByTimeList for date={date}")

    found_block = _find_by(_list_field(day, "classByTimeList", where), "id", str(slot))
    if found_block is None:
        return None
    i, block = found_block
    where = f"{where}.classByTimeList[{i}]"

    found_center = _find_by(_list_field(block, "centerWiseClasses", where), "centerId", str(center_id))
    if found_center is None:
        return None
    j, center = found_center
    where = f"{where}.centerWiseClasses[{j}]"

    classes = tuple(
        _parse_offering(c, f"{where}.classes[{k}]") for k, c in enumerate(_list_field(center, "classes", where))
    )
    return CenterClasses(center_id=str(center_id), classes=classes)


def select_candidates(
    schedule: ScheduleDocument,
    *,
    center_id: str,
    slot: str,
    preferred_workout_ids: Sequence[str],
) -> list[Candidate]:
    """Return AVAILABLE classes for slot/center, best preference first.

    A missing slot or center is not an error: the result is just empty.
    """
    center = find_center_classes(schedule, center_id=center_id, slot=slot)
    if center is None:
        return []

    preferred = [str(w) for w in preferred_workout_ids]
    preferred_set = set(preferred)

    def _rank(workout_id: str) -> int:
        try:
            return preferred.index(workout_id)
        except ValueError:
            return -1

    candidates = [
        Candidate(
            activity_id=c.id,
            workout_id=c.workout_id,
            state=c.state,
            start_time=c.start_time,
            end_time=c.end_time,
            rank=_rank(c.workout_id),
        )
        for c in center.classes
        if c.workout_id in preferred_set and c.state == AVAILABLE
    ]
    # sort() is stable: same workout id keeps provider order.
    candidates.sort(key=lambda c: c.rank)
    return candidates
