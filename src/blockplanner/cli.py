"""Command-line interface for the blockplanner scheduling tool."""

import argparse
import logging
import random
import sys
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Optional

import pytz

from blockplanner.domain.models import (
    BookedEvent,
    PlacedEvent,
    SchedulableTask,
    ScheduleScope,
    TimeBlock,
    Weekday,
)
from blockplanner.domain.rules import SchedulingRules
from blockplanner.errors import BlockPlannerError
from blockplanner.integrations.memory import (
    InMemoryCalendar,
    InMemoryRulesStore,
    InMemoryTaskStore,
)
from blockplanner.io_json import (
    load_events,
    load_placements,
    load_rules_file,
    load_tasks,
    save_events,
    save_placements,
)
from blockplanner.output.debug_generator import DebugGenerator
from blockplanner.output.pdf_generator import PDFGenerator
from blockplanner.scheduling.scheduler import Scheduler
from blockplanner.scheduling.scorer import TaskScorer
from blockplanner.validation.validator import PlacementValidator, ValidationResult

# The CLI works on a single local user's files
LOCAL_USER = "local"


def create_sample_rules() -> SchedulingRules:
    """Create sample rules: a shared morning, a work afternoon and a Saturday block."""
    working_days = {day: not day.is_weekend for day in Weekday}
    working_days[Weekday.SATURDAY] = True
    return SchedulingRules(
        working_days=working_days,
        time_blocks=[
            TimeBlock(id="morning", day="weekday", start_time="09:00", end_time="12:00"),
            TimeBlock(
                id="afternoon", day="weekday", start_time="13:00", end_time="17:00",
                resource_id="work",
            ),
            TimeBlock(
                id="saturday", day="saturday", start_time="10:00", end_time="12:00",
                resource_id="personal",
            ),
        ],
    )


def create_sample_tasks(count: int = 12) -> list[SchedulableTask]:
    """Create sample tasks for the demo.

    Args:
        count: Number of tasks to create.
    """
    titles = [
        "Write quarterly report", "Review pull requests", "Plan sprint",
        "Call the bank", "Prepare slides", "Inbox zero", "Read paper",
        "Refactor billing module", "Grocery run", "Update resume",
        "Fix flaky test", "Draft blog post", "Tax paperwork", "Gym session",
    ]
    durations = [30, 45, 60, 90, 120, 150, 15, 180]
    priorities = ["high", "medium", "low", None]
    resources = ["work", "work", "personal", None]

    return [
        SchedulableTask(
            id=f"task-{i + 1}",
            title=titles[i % len(titles)],
            estimated_duration=durations[i % len(durations)],
            priority=priorities[i % len(priorities)],
            resource_id=resources[i % len(resources)],
        )
        for i in range(count)
    ]


def create_sample_events(start_date: date, days: int, timezone: str) -> list[BookedEvent]:
    """Create a daily stand-up plus a team meeting every other day."""
    tz = pytz.timezone(timezone)
    events = []
    for offset in range(days + 1):
        d = start_date + timedelta(days=offset)
        events.append(
            BookedEvent(
                id=f"standup-{d.isoformat()}",
                start=tz.localize(datetime.combine(d, time(9, 30))),
                end=tz.localize(datetime.combine(d, time(9, 45))),
                summary="Stand-up",
            )
        )
        if offset % 2 == 0:
            events.append(
                BookedEvent(
                    id=f"meeting-{d.isoformat()}",
                    start=tz.localize(datetime.combine(d, time(14, 0))),
                    end=tz.localize(datetime.combine(d, time(15, 0))),
                    summary="Team meeting",
                )
            )
    return events


def build_scheduler(
    rules: SchedulingRules,
    tasks: list[SchedulableTask],
    booked: list[BookedEvent],
    template: Optional[list[TimeBlock]] = None,
    seed: Optional[int] = None,
) -> Scheduler:
    """Wire a scheduler to in-memory stores holding the local user's data."""
    rules_store = InMemoryRulesStore(rules={LOCAL_USER: rules})
    if template is not None:
        rules_store.set_time_blocks(LOCAL_USER, ScheduleScope.IDEAL_WEEK, template)

    calendar = InMemoryCalendar(events={LOCAL_USER: booked})
    return Scheduler(
        task_source=InMemoryTaskStore(tasks={LOCAL_USER: tasks}),
        event_source=calendar,
        rules_source=rules_store,
        event_sink=calendar,
        scorer=TaskScorer(random.Random(seed)),
    )


def print_preview(
    events: list[PlacedEvent],
    stats: dict,
    validation: ValidationResult,
) -> None:
    """Print a preview summary."""
    print(f"\nPreview: {len(events)} events for "
          f"{stats['tasks_placed']}/{stats['tasks_requested']} tasks")
    print(f"  Split: {stats['tasks_split']}, Partial: {stats['tasks_partial']}, "
          f"Unscheduled: {stats['tasks_unscheduled']}")
    print(f"  Free minutes: {stats['free_minutes']}, placed: {stats['placed_minutes']}")

    current_day = None
    for event in sorted(events, key=lambda e: e.start):
        if event.day != current_day:
            current_day = event.day
            print(f"\n  {current_day.strftime('%A %Y-%m-%d')}")
        print(f"    {event.start.strftime('%H:%M')}-{event.end.strftime('%H:%M')}  {event.title}")

    if validation.is_valid:
        print("\n  Validation: PASSED")
    else:
        print(f"\n  Validation: FAILED ({len(validation.errors)} errors)")
        for error in validation.errors[:5]:
            print(f"    - {error}")
        if len(validation.errors) > 5:
            print(f"    ... and {len(validation.errors) - 5} more errors")


def write_outputs(
    scheduler: Scheduler,
    events: list[PlacedEvent],
    stats: dict,
    tasks: list[SchedulableTask],
    json_path: Optional[str] = None,
    pdf_path: Optional[str] = None,
    debug_path: Optional[str] = None,
) -> None:
    """Write the optional preview files requested on the command line."""
    if json_path:
        save_placements(events, json_path, stats)
        print(f"\nPreview saved: {json_path}")

    if debug_path and scheduler.last_result is not None:
        DebugGenerator().generate(
            scheduler.last_result, debug_path, {t.id: t for t in tasks}, stats
        )
        print(f"Debug output saved: {debug_path}")

    if pdf_path:
        print(f"\nGenerating PDF: {pdf_path}")
        PDFGenerator().generate(events, pdf_path)
        print("  PDF created successfully!")


def run_demo(
    task_count: int = 12,
    days: int = 6,
    output_path: Optional[str] = None,
    seed: Optional[int] = None,
) -> None:
    """Run a demo preview with sample rules, tasks and events."""
    print(f"Generating demo preview for {task_count} tasks over {days + 1} days...")

    rules = create_sample_rules()
    start_date = date.today()
    tasks = create_sample_tasks(task_count)
    booked = create_sample_events(start_date, days, rules.timezone)

    scheduler = build_scheduler(rules, tasks, booked, seed=seed)
    events, stats = scheduler.schedule_preview_with_stats(
        LOCAL_USER, ScheduleScope.THIS_WEEK, start_date, days
    )

    validation = PlacementValidator().validate(
        events, rules, booked, {t.id: t for t in tasks}
    )
    print_preview(events, stats, validation)

    if output_path:
        write_outputs(scheduler, events, stats, tasks, pdf_path=output_path)


def run_preview(args: argparse.Namespace) -> int:
    """Compute a preview from JSON input files."""
    try:
        if args.rules:
            rules, template = load_rules_file(args.rules)
        else:
            rules, template = SchedulingRules(), None
        if args.timezone:
            pytz.timezone(args.timezone)
            rules.timezone = args.timezone
        tasks = load_tasks(args.tasks)
        booked = load_events(args.events, rules.timezone) if args.events else []
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e.filename}", file=sys.stderr)
        return 1
    except pytz.UnknownTimeZoneError:
        print(f"[ERROR] Unknown time zone: {args.timezone}", file=sys.stderr)
        return 1
    except (BlockPlannerError, ValueError) as e:
        print(f"[ERROR] Could not load input: {e}", file=sys.stderr)
        return 1

    scheduler = build_scheduler(rules, tasks, booked, template, args.seed)
    try:
        events, stats = scheduler.schedule_preview_with_stats(
            LOCAL_USER, args.scope, args.start, args.days
        )
    except BlockPlannerError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    validation = PlacementValidator().validate(
        events, rules, booked, {t.id: t for t in tasks}
    )
    print_preview(events, stats, validation)
    write_outputs(scheduler, events, stats, tasks, args.json, args.output, args.debug)
    return 0 if validation.is_valid else 2


def run_upload(args: argparse.Namespace) -> int:
    """Upload a saved preview into a JSON calendar file."""
    calendar_path = Path(args.calendar)
    try:
        events = load_placements(args.placements)
        booked = load_events(calendar_path) if calendar_path.exists() else []
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e.filename}", file=sys.stderr)
        return 1
    except (BlockPlannerError, ValueError) as e:
        print(f"[ERROR] Could not load input: {e}", file=sys.stderr)
        return 1

    calendar = InMemoryCalendar(events={LOCAL_USER: booked})
    scheduler = Scheduler(
        task_source=InMemoryTaskStore(),
        event_source=calendar,
        rules_source=InMemoryRulesStore(),
        event_sink=calendar,
    )
    result = scheduler.schedule_upload(LOCAL_USER, events)
    save_events(calendar.events.get(LOCAL_USER, {}).values(), calendar_path)

    print(f"Uploaded {result.total_uploaded}/{result.total_events} events to {calendar_path}")
    for failure in result.failures:
        print(f"  [FAILED] {failure.title} ({failure.event_id}): {failure.error}")
    return 0 if result.is_complete else 2


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def main() -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="blockplanner - Task to Time Block Scheduling Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                                  Run demo with 12 sample tasks
  %(prog)s demo --output preview.pdf             Generate PDF output

  %(prog)s preview --tasks tasks.json            Preview with default rules
  %(prog)s preview --rules rules.json --tasks tasks.json --events cal.json
  %(prog)s preview --tasks tasks.json --scope ideal-week --json preview.json

  %(prog)s upload --placements preview.json --calendar cal.json
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run a demo preview with sample data")
    demo_parser.add_argument(
        "--count", "-c",
        type=int,
        default=12,
        help="Number of sample tasks (default: 12)",
    )
    demo_parser.add_argument(
        "--days", "-d",
        type=int,
        default=6,
        help="Days after today to schedule (default: 6)",
    )
    demo_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output PDF file path",
    )
    demo_parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the score randomness",
    )

    # Preview command
    preview_parser = subparsers.add_parser("preview", help="Preview placements from JSON files")
    preview_parser.add_argument("--tasks", "-t", required=True, help="Tasks JSON file")
    preview_parser.add_argument("--rules", "-r", help="Scheduling rules JSON file")
    preview_parser.add_argument("--events", "-e", help="Booked calendar events JSON file")
    preview_parser.add_argument(
        "--start", "-s",
        type=_parse_date,
        default=date.today(),
        help="First day to schedule, YYYY-MM-DD (default: today)",
    )
    preview_parser.add_argument(
        "--days", "-d",
        type=int,
        default=7,
        help="Days after the start to include (default: 7)",
    )
    preview_parser.add_argument(
        "--scope",
        default=ScheduleScope.THIS_WEEK.value,
        choices=[scope.value for scope in ScheduleScope],
        help="Time block set to use (default: this-week)",
    )
    preview_parser.add_argument("--seed", type=int, help="Seed for the score randomness")
    preview_parser.add_argument("--timezone", help="Override the rules time zone")
    preview_parser.add_argument("--json", "-j", help="Save the preview as JSON")
    preview_parser.add_argument("--output", "-o", help="Output PDF file path")
    preview_parser.add_argument("--debug", help="Output debug text file path")

    # Upload command
    upload_parser = subparsers.add_parser("upload", help="Upload a saved preview to a calendar")
    upload_parser.add_argument(
        "--placements", "-p",
        required=True,
        help="Preview JSON file written by 'preview --json'",
    )
    upload_parser.add_argument(
        "--calendar", "-C",
        required=True,
        help="Calendar events JSON file (created if missing)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "demo":
        run_demo(args.count, args.days, args.output, args.seed)
        return 0
    elif args.command == "preview":
        return run_preview(args)
    elif args.command == "upload":
        return run_upload(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
