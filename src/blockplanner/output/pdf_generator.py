"""PDF generation for preview output.

This module creates printable PDF previews showing:
- A day-by-day timeline with every placed event
- A listing of the placed events with their source tasks
"""

from collections import defaultdict
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence, Union

from blockplanner.domain.models import PlacedEvent, Priority

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    Priority.HIGH: (0.9, 0.4, 0.35),  # Tomato
    Priority.MEDIUM: (0.95, 0.8, 0.3),  # Banana
    Priority.LOW: (0.55, 0.75, 0.55),  # Sage
    "partial": (0.8, 0.8, 0.8),  # Gray
    "background": (0.95, 0.95, 0.95),  # Light gray
}

DEFAULT_FIRST_HOUR = 8
DEFAULT_LAST_HOUR = 18


class PDFGenerator:
    """Generates printable PDF schedule previews.

    Example:
        >>> generator = PDFGenerator()
        >>> generator.generate(events, "preview.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        events: Sequence[PlacedEvent],
        output_path: Union[str, Path],
        title: str = "Schedule Preview",
        include_listing: bool = True,
    ) -> None:
        """Generate PDF preview and save to file.

        Args:
            events: Placed events to render.
            output_path: Path to save the PDF.
            title: Heading printed on every page.
            include_listing: Whether to include the event listing pages.
        """
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        c = canvas.Canvas(str(output_path), pagesize=landscape(letter))
        self._draw(c, events, title, include_listing)
        c.save()

    def generate_to_buffer(
        self,
        events: Sequence[PlacedEvent],
        title: str = "Schedule Preview",
        include_listing: bool = True,
    ) -> BytesIO:
        """Generate PDF and return as bytes buffer."""
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=landscape(letter))
        self._draw(c, events, title, include_listing)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw(self, c, events: Sequence[PlacedEvent], title: str, include_listing: bool) -> None:
        by_day: dict[date, list[PlacedEvent]] = defaultdict(list)
        for event in events:
            by_day[event.day].append(event)

        self._draw_timeline_page(c, by_day, title)
        if include_listing and events:
            self._draw_listing_pages(c, events, title)

    def _hour_range(self, by_day: dict[date, list[PlacedEvent]]) -> tuple[int, int]:
        """Hours covered by the timeline, widened to fit every event."""
        first, last = DEFAULT_FIRST_HOUR, DEFAULT_LAST_HOUR
        for events in by_day.values():
            for event in events:
                first = min(first, event.start.hour)
                last = max(last, event.end.hour + (1 if event.end.minute else 0))
        return first, last

    def _draw_header(self, c, title: str, subtitle: str) -> None:
        """Draw page header with title."""
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 16)
        c.drawString(self.margin, self.page_height - self.margin - 20, title)

        c.setFont("Helvetica", 10)
        c.drawString(self.margin, self.page_height - self.margin - 35, subtitle)

    def _draw_timeline_page(self, c, by_day: dict[date, list[PlacedEvent]], title: str) -> None:
        """Draw one timeline row per day with its placed events."""
        total = sum(len(events) for events in by_day.values())
        self._draw_header(c, title, f"Placed Events: {total}")

        if not by_day:
            c.setFont("Helvetica", 12)
            c.drawString(self.margin, self.page_height / 2, "Nothing to schedule.")
            c.showPage()
            return

        first_hour, last_hour = self._hour_range(by_day)
        total_minutes = (last_hour - first_hour) * 60

        timeline_left = self.margin + 110  # Space for day labels
        timeline_width = self.page_width - self.margin - 20 - timeline_left
        top = self.page_height - self.margin - 70
        row_height = min(50, (top - self.margin - 40) / len(by_day))

        # Hour axis
        c.setFont("Helvetica", 8)
        c.setStrokeColorRGB(0.7, 0.7, 0.7)
        for hour in range(first_hour, last_hour + 1):
            x = timeline_left + (hour - first_hour) * 60 / total_minutes * timeline_width
            c.line(x, top, x, top - 5)
            c.drawCentredString(x, top + 5, f"{hour:02d}:00")

        y = top - 10
        for day in sorted(by_day):
            y -= row_height
            height = row_height - 6

            c.setFillColorRGB(0, 0, 0)
            c.setFont("Helvetica-Bold", 9)
            c.drawString(self.margin, y + height / 2, day.strftime("%a %b %d"))

            c.setFillColorRGB(*COLORS["background"])
            c.rect(timeline_left, y, timeline_width, height, fill=1, stroke=0)

            for event in by_day[day]:
                offset = event.start.hour * 60 + event.start.minute - first_hour * 60
                bx = timeline_left + offset / total_minutes * timeline_width
                bw = event.duration_minutes / total_minutes * timeline_width

                c.setFillColorRGB(*self._color_for(event))
                c.setStrokeColorRGB(0.3, 0.3, 0.3)
                c.setLineWidth(0.5)
                c.rect(bx, y, bw, height, fill=1, stroke=1)

                c.setFillColorRGB(0, 0, 0)
                c.setFont("Helvetica", 6)
                c.drawString(bx + 2, y + height / 2 - 2, self._fit(event.title, bw))

        self._draw_legend(c, self.margin, self.margin + 10)
        c.showPage()

    def _draw_listing_pages(self, c, events: Sequence[PlacedEvent], title: str) -> None:
        """Draw a table of every placed event, paginated."""
        row_height = 14
        usable_height = self.page_height - 2 * self.margin - 80
        rows_per_page = int(usable_height / row_height)
        ordered = sorted(events, key=lambda e: e.start)
        total_pages = (len(ordered) + rows_per_page - 1) // rows_per_page

        for page_start in range(0, len(ordered), rows_per_page):
            page_num = page_start // rows_per_page + 1
            self._draw_header(c, title, f"Event Listing (page {page_num} of {total_pages})")

            y = self.page_height - self.margin - 60
            c.setFont("Helvetica-Bold", 9)
            for x, label in self._columns(("Date", "Time", "Title", "Priority", "Task")):
                c.drawString(x, y, label)

            c.setFont("Helvetica", 8)
            for event in ordered[page_start : page_start + rows_per_page]:
                y -= row_height
                values = (
                    event.start.strftime("%a %Y-%m-%d"),
                    f"{event.start.strftime('%H:%M')}-{event.end.strftime('%H:%M')}",
                    event.title[:60],
                    event.category or "-",
                    event.task_id[:24],
                )
                for x, value in self._columns(values):
                    c.drawString(x, y, value)

            c.showPage()

    def _columns(self, values: Sequence[str]) -> list[tuple[float, str]]:
        offsets = (0, 90, 170, 520, 580)
        return [(self.margin + offset, value) for offset, value in zip(offsets, values)]

    def _draw_legend(self, c, x: float, y: float) -> None:
        """Draw legend for colors."""
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 8)
        c.drawString(x, y, "Legend:")

        items = [
            (Priority.HIGH, "High"),
            (Priority.MEDIUM, "Medium"),
            (Priority.LOW, "Low"),
            ("partial", "Partial"),
        ]

        c.setFont("Helvetica", 7)
        current_x = x + 45
        for key, label in items:
            c.setFillColorRGB(*COLORS[key])
            c.rect(current_x, y - 2, 12, 10, fill=1, stroke=1)
            c.setFillColorRGB(0, 0, 0)
            c.drawString(current_x + 15, y, label)
            current_x += 70

    def _color_for(self, event: PlacedEvent) -> tuple[float, float, float]:
        if event.is_partial:
            return COLORS["partial"]
        priority: Optional[Priority] = Priority.parse(event.category)
        return COLORS[priority or Priority.LOW]

    @staticmethod
    def _fit(text: str, width: float) -> str:
        """Truncate a label to roughly fit a box of the given width."""
        max_chars = max(int(width / 3.2), 0)
        return text if len(text) <= max_chars else text[: max(max_chars - 1, 0)]
