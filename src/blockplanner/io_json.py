"""
JSON loading and saving for rules, tasks, calendar events and placements.

Inputs use the camelCase wire shapes of the task store and calendar.
Basic structural validation is applied before domain objects are built;
problems are reported as ConfigError with the location that failed.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import pytz

from blockplanner.domain.models import BookedEvent, PlacedEvent, SchedulableTask, TimeBlock
from blockplanner.domain.rules import SchedulingRules
from blockplanner.errors import ConfigError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _require(obj: dict[str, Any], key: str, ctx: str) -> Any:
    if key not in obj:
        raise ConfigError(f"Missing required key '{key}' in {ctx}")
    return obj[key]


def _as_list(obj: Any, ctx: str) -> list[Any]:
    if not isinstance(obj, list):
        raise ConfigError(f"Expected a JSON array in {ctx}, got {type(obj).__name__}")
    return obj


def _as_dict(obj: Any, ctx: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(f"Expected a JSON object in {ctx}, got {type(obj).__name__}")
    return obj


def _items(raw: Any, key: str, ctx: str) -> list[Any]:
    """Accept either a bare array or an object wrapping it under ``key``."""
    if isinstance(raw, dict):
        return _as_list(_require(raw, key, ctx), f"{ctx}.{key}")
    return _as_list(raw, ctx)


def read_json(path: PathLike) -> Any:
    """Read a JSON document, reporting syntax errors as ConfigError."""
    with Path(path).open("r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc


def write_json(data: Any, path: PathLike) -> None:
    with Path(path).open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def _timezone(name: str, ctx: str) -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as exc:
        raise ConfigError(f"Unknown time zone {name!r} in {ctx}") from exc


def parse_datetime(value: Any, ctx: str, default_timezone: str = "UTC") -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Naive timestamps are interpreted in ``default_timezone``.
    """
    if not isinstance(value, str):
        raise ConfigError(f"Expected an ISO timestamp in {ctx}, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ConfigError(f"Invalid timestamp {value!r} in {ctx}") from exc
    if moment.tzinfo is None:
        moment = _timezone(default_timezone, ctx).localize(moment)
    return moment


# --- Rules ---


def parse_rules(raw: Any, ctx: str = "rules") -> SchedulingRules:
    """Build SchedulingRules from the camelCase rules document."""
    raw = _as_dict(raw, ctx)
    try:
        rules = SchedulingRules.from_dict(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid scheduling rules in {ctx}: {exc}") from exc
    _timezone(rules.timezone, ctx)
    return rules


def load_rules(path: PathLike) -> SchedulingRules:
    """Load scheduling rules from a JSON file."""
    return parse_rules(read_json(path), str(path))


def load_rules_file(path: PathLike) -> tuple[SchedulingRules, Optional[list[TimeBlock]]]:
    """Load rules plus the optional ideal-week template blocks.

    The template is read from an ``idealWeekBlocks`` array next to the
    regular rule keys. Returns None for it when the key is absent.
    """
    raw = _as_dict(read_json(path), str(path))
    rules = parse_rules(raw, str(path))
    template = None
    if "idealWeekBlocks" in raw:
        ctx = f"{path}.idealWeekBlocks"
        template = [
            TimeBlock.from_dict(_as_dict(block, f"{ctx}[{i}]"))
            for i, block in enumerate(_as_list(raw["idealWeekBlocks"], ctx))
        ]
    return rules, template


def save_rules(rules: SchedulingRules, path: PathLike) -> None:
    write_json(rules.to_dict(), path)


# --- Tasks ---


def parse_task(raw: Any, ctx: str) -> SchedulableTask:
    """Build a task from ``{id, title, completed, estimatedDuration, priority, resourceId}``.

    ``duration`` is accepted in place of ``estimatedDuration``.
    """
    raw = _as_dict(raw, ctx)
    duration = raw.get("estimatedDuration", raw.get("duration"))
    if duration is not None:
        try:
            duration = int(duration)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid estimatedDuration {duration!r} in {ctx}") from exc
        if duration < 0:
            raise ConfigError(f"Negative estimatedDuration in {ctx}")

    return SchedulableTask(
        id=str(_require(raw, "id", ctx)),
        title=str(raw.get("title") or "Untitled task"),
        completed=bool(raw.get("completed", False)),
        estimated_duration=duration,
        priority=raw.get("priority"),
        resource_id=raw.get("resourceId") or raw.get("databaseId"),
    )


def parse_tasks(raw: Any, ctx: str = "tasks") -> list[SchedulableTask]:
    tasks = [parse_task(item, f"{ctx}[{i}]") for i, item in enumerate(_items(raw, "tasks", ctx))]
    _check_unique_ids(tasks, ctx)
    return tasks


def load_tasks(path: PathLike) -> list[SchedulableTask]:
    """Load tasks from a JSON array or a ``{"tasks": [...]}`` object."""
    return parse_tasks(read_json(path), str(path))


# --- Calendar events ---


def parse_event(raw: Any, ctx: str, default_timezone: str = "UTC") -> Optional[BookedEvent]:
    """Build a booked event from the calendar shape.

    Returns None for all-day events, which carry only a ``date`` and do
    not block timed slots.
    """
    raw = _as_dict(raw, ctx)
    start_raw = _as_dict(_require(raw, "start", ctx), f"{ctx}.start")
    end_raw = _as_dict(_require(raw, "end", ctx), f"{ctx}.end")
    if "dateTime" not in start_raw or "dateTime" not in end_raw:
        logger.debug("Skipping all-day event in %s", ctx)
        return None

    start = parse_datetime(
        start_raw["dateTime"], f"{ctx}.start",
        start_raw.get("timeZone") or default_timezone,
    )
    end = parse_datetime(
        end_raw["dateTime"], f"{ctx}.end",
        end_raw.get("timeZone") or default_timezone,
    )
    if end <= start:
        raise ConfigError(f"Event end must be after start in {ctx}")

    return BookedEvent(
        id=str(raw.get("id") or ctx),
        start=start,
        end=end,
        summary=str(raw.get("summary", "")),
    )


def parse_events(raw: Any, ctx: str = "events", default_timezone: str = "UTC") -> list[BookedEvent]:
    events = []
    for i, item in enumerate(_items(raw, "items", ctx)):
        event = parse_event(item, f"{ctx}[{i}]", default_timezone)
        if event is not None:
            events.append(event)
    return events


def load_events(path: PathLike, default_timezone: str = "UTC") -> list[BookedEvent]:
    """Load booked events from a JSON array or a ``{"items": [...]}`` object."""
    return parse_events(read_json(path), str(path), default_timezone)


def event_to_dict(event: BookedEvent) -> dict:
    return {
        "id": event.id,
        "summary": event.summary,
        "start": {"dateTime": event.start.isoformat()},
        "end": {"dateTime": event.end.isoformat()},
    }


def save_events(events: Sequence[BookedEvent], path: PathLike) -> None:
    """Save booked events as ``{"items": [...]}`` in start order."""
    ordered = sorted(events, key=lambda e: e.start)
    write_json({"items": [event_to_dict(event) for event in ordered]}, path)


# --- Placements ---


def parse_placement(raw: Any, ctx: str) -> PlacedEvent:
    """Rebuild a placed event from the dict produced by ``PlacedEvent.to_dict``."""
    raw = _as_dict(raw, ctx)
    start_raw = _as_dict(_require(raw, "start", ctx), f"{ctx}.start")
    end_raw = _as_dict(_require(raw, "end", ctx), f"{ctx}.end")
    time_zone = str(start_raw.get("timeZone") or "UTC")

    part = raw.get("part")
    return PlacedEvent(
        id=str(_require(raw, "id", ctx)),
        title=str(raw.get("summary", "")),
        start=parse_datetime(_require(start_raw, "dateTime", f"{ctx}.start"), ctx, time_zone),
        end=parse_datetime(_require(end_raw, "dateTime", f"{ctx}.end"), ctx, time_zone),
        time_zone=time_zone,
        description=str(raw.get("description", "")),
        color_id=raw.get("colorId"),
        category=raw.get("category"),
        task_id=str(raw.get("taskId", "")),
        part=int(part) if part is not None else None,
        is_partial=bool(raw.get("isPartial", False)),
        slot_resource_id=raw.get("resourceId"),
    )


def load_placements(path: PathLike) -> list[PlacedEvent]:
    """Load a saved preview."""
    raw = read_json(path)
    return [
        parse_placement(item, f"{path}[{i}]")
        for i, item in enumerate(_items(raw, "events", str(path)))
    ]


def save_placements(
    events: Sequence[PlacedEvent],
    path: PathLike,
    stats: Optional[dict] = None,
) -> None:
    """Save a preview as ``{"events": [...], "stats": {...}}``."""
    data: dict[str, Any] = {"events": [event.to_dict() for event in events]}
    if stats is not None:
        data["stats"] = stats
    write_json(data, path)


def _check_unique_ids(items: list, ctx: str) -> None:
    seen: set = set()
    dupes: set = set()
    for item in items:
        if not item.id:
            raise ConfigError(f"Empty or missing 'id' in {ctx}")
        if item.id in seen:
            dupes.add(item.id)
        seen.add(item.id)
    if dupes:
        raise ConfigError(f"Duplicate ids in {ctx}: {sorted(dupes)}")
