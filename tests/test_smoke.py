"""Smoke tests for the end-to-end preview and upload flow."""

import json
import sys
from datetime import date

import pytest

from blockplanner import cli
from blockplanner.domain.models import ScheduleScope, TimeBlock
from blockplanner.io_json import load_events
from blockplanner.output.debug_generator import DebugGenerator
from blockplanner.output.pdf_generator import PDFGenerator
from blockplanner.scheduling.allocator import AllocationResult
from blockplanner.validation.validator import PlacementValidator

MONDAY = date(2024, 1, 15)


class TestSmoke:
    """End-to-end smoke tests for the scheduling system."""

    @pytest.fixture
    def rules(self):
        return cli.create_sample_rules()

    @pytest.fixture
    def tasks(self):
        return cli.create_sample_tasks(20)

    @pytest.fixture
    def booked(self, rules):
        return cli.create_sample_events(MONDAY, 6, rules.timezone)

    def test_week_preview_is_valid(self, rules, tasks, booked):
        scheduler = cli.build_scheduler(rules, tasks, booked, seed=3)
        events, stats = scheduler.schedule_preview_with_stats(
            cli.LOCAL_USER, ScheduleScope.THIS_WEEK, MONDAY, 6
        )

        assert events
        assert stats["tasks_placed"] > 0
        validation = PlacementValidator().validate(
            events, rules, booked, {t.id: t for t in tasks}
        )
        assert validation.is_valid, [str(e) for e in validation.errors]

    def test_preview_then_upload(self, rules, tasks, booked):
        scheduler = cli.build_scheduler(rules, tasks, booked, seed=3)
        events = scheduler.schedule_preview(cli.LOCAL_USER, "this-week", MONDAY, 6)

        result = scheduler.schedule_upload(cli.LOCAL_USER, events)

        assert result.is_complete
        assert result.total_uploaded == len(events)

    def test_ideal_week_template(self, rules, tasks, booked):
        template = [TimeBlock(id="ideal", day="weekday", start_time="06:00", end_time="08:00")]
        scheduler = cli.build_scheduler(rules, tasks, booked, template=template, seed=3)
        events = scheduler.schedule_preview(cli.LOCAL_USER, "ideal-week", MONDAY, 4)

        assert events
        assert all(6 <= e.start.hour < 8 for e in events)

    def test_debug_output(self, rules, tasks, booked, tmp_path):
        scheduler = cli.build_scheduler(rules, tasks, booked, seed=3)
        _, stats = scheduler.schedule_preview_with_stats(
            cli.LOCAL_USER, "this-week", MONDAY, 6
        )

        path = tmp_path / "debug.txt"
        content = DebugGenerator().generate(
            scheduler.last_result, path, {t.id: t for t in tasks}, stats
        )

        assert path.read_text() == content
        assert "TASK OUTCOMES" in content
        assert "REMAINING FREE SLOTS" in content

    def test_debug_output_empty(self):
        content = DebugGenerator().generate_to_string(AllocationResult())
        assert "No events placed." in content

    def test_pdf_output(self, rules, tasks, booked):
        pytest.importorskip("reportlab")
        scheduler = cli.build_scheduler(rules, tasks, booked, seed=3)
        events = scheduler.schedule_preview(cli.LOCAL_USER, "this-week", MONDAY, 6)

        buffer = PDFGenerator().generate_to_buffer(events)
        assert buffer.read(4) == b"%PDF"

    def test_pdf_output_empty(self, tmp_path):
        pytest.importorskip("reportlab")
        path = tmp_path / "empty.pdf"
        PDFGenerator().generate([], path)
        assert path.read_bytes().startswith(b"%PDF")


class TestCli:
    """Tests for the command-line entry point."""

    def run_main(self, monkeypatch, *argv):
        monkeypatch.setattr(sys, "argv", ["blockplanner", *argv])
        return cli.main()

    def test_demo(self, monkeypatch, capsys):
        assert self.run_main(monkeypatch, "demo", "--count", "8", "--seed", "1") == 0
        out = capsys.readouterr().out
        assert "Preview:" in out
        assert "Validation: PASSED" in out

    def test_no_command_prints_help(self, monkeypatch, capsys):
        assert self.run_main(monkeypatch) == 1

    def test_preview_and_upload(self, monkeypatch, capsys, tmp_path):
        tasks_path = tmp_path / "tasks.json"
        tasks_path.write_text(json.dumps({"tasks": [
            {"id": "a", "title": "Report", "estimatedDuration": 60, "priority": "high"},
            {"id": "b", "title": "Email", "estimatedDuration": 15, "priority": "low"},
            {"id": "c", "title": "Done", "completed": True},
        ]}))
        events_path = tmp_path / "calendar.json"
        events_path.write_text(json.dumps({"items": [
            {"id": "busy", "summary": "Busy",
             "start": {"dateTime": "2024-01-15T09:00:00Z"},
             "end": {"dateTime": "2024-01-15T12:00:00Z"}},
        ]}))
        preview_path = tmp_path / "preview.json"

        code = self.run_main(
            monkeypatch, "preview", "--tasks", str(tasks_path), "--events", str(events_path),
            "--start", "2024-01-15", "--days", "0", "--seed", "1", "--json", str(preview_path),
        )
        assert code == 0
        assert "Validation: PASSED" in capsys.readouterr().out

        saved = json.loads(preview_path.read_text())
        assert {e["taskId"] for e in saved["events"]} == {"a", "b"}
        assert all(e["start"]["dateTime"] >= "2024-01-15T12:00" for e in saved["events"])

        code = self.run_main(
            monkeypatch, "upload", "--placements", str(preview_path),
            "--calendar", str(events_path),
        )
        assert code == 0
        assert "Uploaded 2/2" in capsys.readouterr().out
        assert len(load_events(events_path)) == 3

    def test_preview_missing_file(self, monkeypatch, capsys, tmp_path):
        code = self.run_main(monkeypatch, "preview", "--tasks", str(tmp_path / "nope.json"))
        assert code == 1
        assert "[ERROR]" in capsys.readouterr().err

    def test_preview_bad_timezone(self, monkeypatch, capsys, tmp_path):
        tasks_path = tmp_path / "tasks.json"
        tasks_path.write_text("[]")
        code = self.run_main(
            monkeypatch, "preview", "--tasks", str(tasks_path), "--timezone", "Nowhere/City",
        )
        assert code == 1
        assert "Nowhere/City" in capsys.readouterr().err

    def test_sample_data_is_deterministic(self):
        assert cli.create_sample_tasks(5) == cli.create_sample_tasks(5)
