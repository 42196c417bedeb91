"""Tests for the rsvp_engine command-line interface.

WHY: The CLI is the quickest way to inspect pacing settings, so its
output formats and error handling must be stable.

HOW: main() is called with an explicit argv; stdout and stderr are
captured with capsys. Input files live in tmp_path.

RULES:
- Errors exit with code 1 and print "Error: ..." to stderr
- Status and statistics never appear on stdout
"""

from __future__ import annotations

import io
import json
import sys

import pytest

from rsvp_engine.cli import build_parser, main


@pytest.fixture
def text_file(tmp_path):
    path = tmp_path / "input.txt"
    path.write_text("Hello, world.\n\nSecond paragraph.", encoding="utf-8")
    return path


def _run_json(capsys, argv):
    main(argv + ["--format", "json"])
    return json.loads(capsys.readouterr().out)


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(["book.txt"])
        assert args.input == "book.txt"
        assert args.wpm is None
        assert args.format == "text"
        assert not args.blocks
        assert not args.chunked

    def test_invalid_format_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["book.txt", "--format", "xml"])


class TestOutput:

    def test_json_output(self, capsys, text_file):
        payload = _run_json(capsys, [str(text_file)])
        texts = [s["text"] for s in payload["slides"]]
        assert texts == ["Hello,", "world.", "Second", "paragraph."]
        assert payload["slides"][1]["post_delay"] == 700
        assert payload["slides"][-1]["post_delay"] == 0
        assert payload["stats"]["total_slides"] == 4
        assert "block_start_indices" not in payload

    def test_text_output(self, capsys, text_file):
        main([str(text_file)])
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 4
        assert lines[0].split()[-1] == "Hello,"
        assert lines[0].split()[1] == "1"

    def test_flags_reach_settings(self, capsys, text_file):
        payload = _run_json(capsys, [str(text_file), "--wpm", "600", "--words-per-slide", "2"])
        texts = [s["text"] for s in payload["slides"]]
        assert texts == ["Hello,", "world.", "Second paragraph."]
        assert payload["slides"][0]["duration"] == pytest.approx(100.0)
        assert payload["slides"][2]["duration"] == pytest.approx(200.0)
        assert payload["slides"][0]["wpm"] == 600

    def test_algorithm_alias(self, capsys, text_file):
        payload = _run_json(capsys, [str(text_file), "--algorithm", "wordLength"])
        durations = [s["duration"] for s in payload["slides"]]
        assert durations[3] > durations[1]

    def test_stdin(self, capsys, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.StringIO("from stdin"))
        payload = _run_json(capsys, ["-"])
        assert [s["text"] for s in payload["slides"]] == ["from", "stdin"]

    def test_stats_go_to_stderr(self, capsys, text_file):
        main([str(text_file), "--stats", "--format", "json"])
        captured = capsys.readouterr()
        json.loads(captured.out)
        assert "4 slides" in captured.err

    def test_empty_input(self, capsys, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("", encoding="utf-8")
        main([str(path)])
        assert capsys.readouterr().out == ""


class TestBlocks:

    def test_blocks_json(self, capsys, tmp_path):
        path = tmp_path / "blocks.json"
        path.write_text(json.dumps([
            {"type": "heading", "content": "Intro", "metadata": {"level": 1}},
            {"type": "text", "content": "Hello world."},
        ]), encoding="utf-8")
        payload = _run_json(capsys, [str(path), "--blocks"])
        assert payload["block_start_indices"] == [0, 1]
        assert payload["slides"][0]["kind"] == "block"
        assert payload["slides"][0]["block_type"] == "heading"

    def test_invalid_json(self, capsys, tmp_path):
        path = tmp_path / "blocks.json"
        path.write_text("not json", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main([str(path), "--blocks"])
        assert exc_info.value.code == 1
        assert "Error: Input is not valid JSON" in capsys.readouterr().err

    def test_schema_violation(self, capsys, tmp_path):
        path = tmp_path / "blocks.json"
        path.write_text(json.dumps([{"type": "video", "content": ""}]), encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main([str(path), "--blocks"])
        assert exc_info.value.code == 1
        assert "Invalid content block" in capsys.readouterr().err


class TestChunked:

    def test_chunked_matches_direct(self, capsys, tmp_path, long_text):
        path = tmp_path / "long.txt"
        path.write_text(long_text, encoding="utf-8")

        direct = _run_json(capsys, [str(path)])
        main([str(path), "--chunked", "--format", "json"])
        captured = capsys.readouterr()
        chunked = json.loads(captured.out)

        assert chunked["slides"] == direct["slides"]
        assert chunked["stats"] == direct["stats"]
        assert "Processing" in captured.err


class TestErrors:

    def test_missing_file(self, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path / "nope.txt")])
        assert exc_info.value.code == 1
        assert "Error: File not found" in capsys.readouterr().err

    def test_wpm_out_of_range(self, capsys, text_file):
        with pytest.raises(SystemExit) as exc_info:
            main([str(text_file), "--wpm", "10"])
        assert exc_info.value.code == 1
        assert "Error: wpm must be between" in capsys.readouterr().err

    def test_unknown_algorithm(self, capsys, text_file):
        with pytest.raises(SystemExit) as exc_info:
            main([str(text_file), "--algorithm", "magic"])
        assert exc_info.value.code == 1
        assert "Unknown timing algorithm" in capsys.readouterr().err
