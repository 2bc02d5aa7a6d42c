"""Debug text output for preview analysis.

This module creates text-based debug output to analyze:
- Which tasks were placed, split, truncated or left out
- How placements are spread across days and hours
- Free time left over after allocation
"""

from collections import defaultdict
from pathlib import Path
from typing import Optional, Union

from blockplanner.domain.models import SchedulableTask
from blockplanner.scheduling.allocator import AllocationOutcome, AllocationResult


class DebugGenerator:
    """Generates debug text output for a scheduling preview.

    Creates human-readable text files showing:
    - Per-day placements in time order
    - Per-task allocation outcomes
    - Hourly load histogram and leftover free slots
    """

    def generate(
        self,
        result: AllocationResult,
        output_path: Union[str, Path],
        tasks_map: Optional[dict[str, SchedulableTask]] = None,
        stats: Optional[dict] = None,
    ) -> str:
        """Generate debug text output and save to file.

        Args:
            result: Allocation result of the preview.
            output_path: Path to save the text file.
            tasks_map: Optional dict mapping task IDs to tasks, for titles.
            stats: Optional run statistics from the scheduler.

        Returns:
            The generated text content.
        """
        content = self._generate_content(result, tasks_map or {}, stats)
        Path(output_path).write_text(content)
        return content

    def generate_to_string(
        self,
        result: AllocationResult,
        tasks_map: Optional[dict[str, SchedulableTask]] = None,
        stats: Optional[dict] = None,
    ) -> str:
        """Generate debug text output and return as string."""
        return self._generate_content(result, tasks_map or {}, stats)

    def _generate_content(
        self,
        result: AllocationResult,
        tasks_map: dict[str, SchedulableTask],
        stats: Optional[dict],
    ) -> str:
        """Generate the full debug content."""
        lines = []

        # Header
        lines.append("=" * 80)
        lines.append("SCHEDULE PREVIEW DEBUG OUTPUT")
        lines.append("=" * 80)
        lines.append("")

        lines.append(f"Tasks Requested: {result.tasks_requested}")
        lines.append(f"Tasks Placed: {result.tasks_placed}")
        lines.append(f"Events Created: {len(result)}")
        lines.append(f"Minutes Placed: {result.placed_minutes}")
        if stats:
            for key in sorted(stats):
                lines.append(f"  {key}: {stats[key]}")
        lines.append("")

        # Placements by day
        lines.append("-" * 80)
        lines.append("PLACEMENTS BY DAY")
        lines.append("-" * 80)

        by_day = defaultdict(list)
        for event in result.events:
            by_day[event.day].append(event)

        for day in sorted(by_day):
            events = sorted(by_day[day], key=lambda e: e.start)
            day_minutes = sum(e.duration_minutes for e in events)
            lines.append(f"\n{day.strftime('%A %Y-%m-%d')} ({len(events)} events, {day_minutes} min):")
            for event in events:
                resource = f" [{event.slot_resource_id}]" if event.slot_resource_id else ""
                lines.append(
                    f"  {event.start.strftime('%H:%M')}-{event.end.strftime('%H:%M')} "
                    f"{event.title[:40]:<40} {event.category or '-':<6}{resource}"
                )

        if not by_day:
            lines.append("No events placed.")
        lines.append("")

        # Task outcomes
        lines.append("-" * 80)
        lines.append("TASK OUTCOMES")
        lines.append("-" * 80)
        lines.append(f"{'Task':<30} {'Outcome':<12} {'Placed':>7} {'Required':>9} {'Events':>7}")
        lines.append("-" * 80)

        for allocation in result.allocations.values():
            task = tasks_map.get(allocation.task_id)
            name = (task.title if task else allocation.task_id)[:30]
            lines.append(
                f"{name:<30} {allocation.outcome.value:<12} "
                f"{allocation.placed_minutes:>7} {allocation.required_minutes:>9} "
                f"{len(allocation.event_ids):>7}"
            )

        lines.append("")
        for outcome in AllocationOutcome:
            lines.append(f"{outcome.value:<12}: {result.count(outcome)}")
        lines.append("")

        # Hourly load histogram
        lines.append("-" * 80)
        lines.append("PLACED MINUTES BY HOUR OF DAY")
        lines.append("-" * 80)

        hour_minutes = defaultdict(int)
        for event in result.events:
            start = event.start.hour * 60 + event.start.minute
            end = start + event.duration_minutes
            while start < end:
                chunk = min(end, (start // 60 + 1) * 60) - start
                hour_minutes[start // 60] += chunk
                start += chunk

        for hour in sorted(hour_minutes):
            minutes = hour_minutes[hour]
            bar = "#" * (minutes // 15)
            lines.append(f"{hour:02d}:00: {bar} ({minutes} min)")

        lines.append("")

        # Leftover free time
        lines.append("-" * 80)
        lines.append("REMAINING FREE SLOTS")
        lines.append("-" * 80)

        for slot in sorted(result.remaining_slots, key=lambda s: s.sort_key):
            resource = f" [{slot.resource_id}]" if slot.resource_id else ""
            lines.append(
                f"  {slot.day} {slot.start_time.strftime('%H:%M')}-"
                f"{slot.end_time.strftime('%H:%M')} ({slot.duration_minutes} min){resource}"
            )

        lines.append("")
        lines.append("=" * 80)
        lines.append("END OF DEBUG OUTPUT")
        lines.append("=" * 80)

        return "\n".join(lines)

