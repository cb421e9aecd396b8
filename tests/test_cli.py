"""
CLI tests — argument handling and command output.

The Bestdori client and pandoc are replaced with fakes.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from storybooker.cli import load_build_config, create_parser, main, parse_now
from storybooker.source.bestdori import BestdoriClient

from tests.fakes.fake_http import FakeMirror, event_entry, scenario_json, story_entry
from tests.fakes.fake_pandoc import FakePandocRunner


def _mirror() -> FakeMirror:
    mirror = FakeMirror(
        events={
            "1": event_entry("Dream Festival", 1600000000000, bundle="event1"),
            "2": event_entry("Future Live", 1900000000000, bundle="event2"),
        },
        stories={
            "1": {"stories": [story_entry("101", "Opening", "Morning")]},
            "2": {"stories": [story_entry("201", "Opening", "Later")]},
        },
    )
    mirror.add_scenario(
        BestdoriClient(mirror).scenario_url("1", "101"),
        scenario_json([("Kasumi", "Hi!")], title="Stage"),
    )
    return mirror


@pytest.fixture
def fake_backends():
    """Patch the HTTP client factory and the pandoc runner."""
    mirror = _mirror()
    runner = FakePandocRunner()

    def make_client(config):
        return BestdoriClient(mirror, region=config.region)

    with patch("storybooker.cli._make_client", make_client), \
         patch("storybooker.builder.pandoc_runner.RealPandocRunner", lambda pandoc_path="pandoc": runner):
        yield mirror, runner


class TestParser:
    def test_version_flag(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "storybooker" in capsys.readouterr().out

    def test_parse_now_naive_is_utc(self):
        now = parse_now("2024-05-01T10:00:00")
        assert now.tzinfo is not None
        assert now.utcoffset().total_seconds() == 0

    def test_parse_now_default(self):
        assert parse_now(None).tzinfo is not None


class TestLoadBuildConfig:
    def test_flags_override_file(self, tmp_path: Path):
        config_path = tmp_path / "c.json"
        config_path.write_text(json.dumps({"region": 0, "excluded_event_ids": ["9"]}))
        args = create_parser().parse_args([
            "build", "-c", str(config_path), "--region", "2", "--exclude", "10", "-o", "out",
        ])

        config = load_build_config(args)

        assert config.region == 2
        assert config.excluded_event_ids == ["9", "10"]
        assert config.output_dir == "out"
        assert config.assets_dir == "assets"

    def test_bad_region(self):
        args = create_parser().parse_args(["events", "--region", "9"])
        with pytest.raises(ValueError):
            load_build_config(args)


class TestRenderCommand:
    def test_render_to_stdout(self, tmp_path: Path, capsys):
        path = tmp_path / "101.json"
        path.write_text(json.dumps(scenario_json([("Kasumi", "Let's go!\nTogether!")])), encoding="utf-8")

        assert main(["render", str(path)]) == 0
        assert capsys.readouterr().out == "**Kasumi:** Let's go! Together!\n\n"

    def test_render_to_file(self, tmp_path: Path):
        path = tmp_path / "101.json"
        path.write_text(json.dumps(scenario_json([], title="Chapter *One*")), encoding="utf-8")
        out = tmp_path / "101.md"

        assert main(["render", str(path), "-o", str(out)]) == 0
        assert out.read_text(encoding="utf-8") == "**-- Chapter \\*One\\* --**\n\n"

    def test_render_malformed(self, tmp_path: Path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"snippets": [{"actionType": 1, "referenceIndex": 0}]}))

        assert main(["render", str(path)]) == 1
        assert "Malformed scenario" in capsys.readouterr().out

    def test_render_null_body(self, tmp_path: Path, capsys):
        path = tmp_path / "null.json"
        path.write_text(json.dumps({
            "snippets": [{"actionType": 1, "referenceIndex": 0}],
            "talkData": [{"windowDisplayName": "Kasumi", "body": None}],
        }))

        assert main(["render", str(path)]) == 1
        assert "Malformed scenario" in capsys.readouterr().out

    def test_render_missing_file(self, tmp_path: Path, capsys):
        assert main(["render", str(tmp_path / "nope.json")]) == 1
        assert "not found" in capsys.readouterr().out

    def test_render_invalid_json(self, tmp_path: Path, capsys):
        path = tmp_path / "bad.json"
        path.write_text("{oops")
        assert main(["render", str(path)]) == 1
        assert "not valid JSON" in capsys.readouterr().out


class TestBuildCommand:
    def test_build(self, tmp_path: Path, capsys, fake_backends):
        _, runner = fake_backends
        out = tmp_path / "Stories"

        code = main([
            "build", "-o", str(out), "--assets", str(tmp_path / "assets"),
            "--now", "2024-01-01T00:00:00",
        ])

        assert code == 0
        book = out / "Event Stories" / "001 - Dream Festival.epub"
        assert book.exists()
        assert "**-- Stage --**" in runner.calls[0].input_text
        output = capsys.readouterr().out
        assert "1 built, 0 failed" in output
        assert "1 not started" in output

    def test_build_with_failure(self, tmp_path: Path, capsys, fake_backends):
        mirror, _ = fake_backends
        mirror.add_scenario(BestdoriClient(mirror).scenario_url("1", "101"), {"Base": {}})

        code = main([
            "build", "-o", str(tmp_path / "Stories"), "--assets", str(tmp_path / "assets"),
            "--now", "2024-01-01T00:00:00",
        ])

        assert code == 1
        output = capsys.readouterr().out
        assert "Failed stories:" in output
        assert "1 - Dream Festival" in output
        assert (tmp_path / "Stories" / "build_failure_report.json").exists()

    def test_build_exclude(self, tmp_path: Path, capsys, fake_backends):
        _, runner = fake_backends

        code = main([
            "build", "-o", str(tmp_path / "Stories"), "--assets", str(tmp_path / "assets"),
            "--now", "2024-01-01T00:00:00", "--exclude", "1",
        ])

        assert code == 0
        assert runner.calls == []
        assert "1 excluded" in capsys.readouterr().out

    def test_build_catalog_unavailable(self, tmp_path: Path, capsys, fake_backends):
        mirror, _ = fake_backends
        mirror.responses.clear()

        code = main(["build", "-o", str(tmp_path / "Stories"), "--assets", str(tmp_path / "assets")])

        assert code == 1
        assert "Build failed" in capsys.readouterr().out


class TestEventsCommand:
    def test_lists_started(self, capsys, fake_backends):
        assert main(["events", "--now", "2024-01-01T00:00:00"]) == 0
        output = capsys.readouterr().out
        assert "1 - Dream Festival" in output
        assert "Future Live" not in output

    def test_lists_all(self, capsys, fake_backends):
        assert main(["events", "--now", "2024-01-01T00:00:00", "--all"]) == 0
        assert "2 - Future Live [not started]" in capsys.readouterr().out

    def test_other_region_names(self, capsys, fake_backends):
        assert main(["events", "--region", "0", "--now", "2024-01-01T00:00:00"]) == 0
        assert "Dream Festival (JP)" in capsys.readouterr().out


class TestInfoCommand:
    def test_missing_book(self, tmp_path: Path, capsys):
        assert main(["info", str(tmp_path / "none.epub")]) == 1
        assert "Error" in capsys.readouterr().out
