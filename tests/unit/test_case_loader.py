"""Tests for test case loading."""

import json
import logging
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from checkout_flow_runner.case_loader import (
    discover_case_files,
    load_test_case,
    load_test_cases,
)
from checkout_flow_runner.errors import CaseLoadError


def write_case(directory: Path, name: str, test_id: str, **extra: Any) -> Path:
    """Write a minimal case file."""
    path = directory / name
    path.write_text(
        json.dumps(
            {
                "testInfo": {"id": test_id},
                "url": "https://shop.example.com/",
                **extra,
            },
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    return path


class TestDiscoverCaseFiles:
    """Tests for discover_case_files."""

    def test_skips_underscore_files(self, tmp_path: Path) -> None:
        """Ignores files starting with an underscore and non-JSON files."""
        write_case(tmp_path, "b.json", "B")
        write_case(tmp_path, "a.json", "A")
        write_case(tmp_path, "_template.json", "T")
        (tmp_path / "notes.txt").write_text("x")

        files = discover_case_files(tmp_path)

        assert [path.name for path in files] == ["a.json", "b.json"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Raises when the directory does not exist."""
        with pytest.raises(FileNotFoundError, match="directory not found"):
            discover_case_files(tmp_path / "missing")


class TestLoadTestCase:
    """Tests for load_test_case."""

    def test_loads_valid_file(self, tmp_path: Path) -> None:
        """Parses a valid case file."""
        path = write_case(
            tmp_path,
            "tc001.json",
            "TC001",
            actions=[{"type": "click", "selector": "#buy"}],
        )

        case = load_test_case(path)

        assert case.test_id == "TC001"
        assert len(case.actions) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        """Raises when the file does not exist."""
        with pytest.raises(FileNotFoundError, match="file not found"):
            load_test_case(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Raises a load error for malformed JSON."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CaseLoadError, match="invalid JSON") as exc_info:
            load_test_case(path)

        assert exc_info.value.path == path

    def test_not_utf8(self, tmp_path: Path) -> None:
        """Raises a load error naming the file when it is not UTF-8."""
        path = tmp_path / "latin1.json"
        path.write_bytes(b"\xff\xfe{}")

        with pytest.raises(CaseLoadError, match="latin1.json") as exc_info:
            load_test_case(path)

        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_unreadable_file(self, tmp_path: Path) -> None:
        """Wraps read errors such as missing permissions."""
        path = write_case(tmp_path, "locked.json", "TC001")

        with (
            patch.object(Path, "read_text", side_effect=PermissionError("denied")),
            pytest.raises(CaseLoadError, match="unreadable: denied"),
        ):
            load_test_case(path)

    def test_invalid_schema(self, tmp_path: Path) -> None:
        """Raises a load error when required fields are missing."""
        path = tmp_path / "no_url.json"
        path.write_text(json.dumps({"testInfo": {"id": "X"}}), encoding="utf-8")

        with pytest.raises(CaseLoadError, match="no_url.json"):
            load_test_case(path)

    def test_warns_about_unknown_actions(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Loads unknown action types with a warning."""
        path = write_case(
            tmp_path, "tc.json", "TC001", actions=[{"type": "doesNotExist"}]
        )

        with caplog.at_level(logging.WARNING):
            case = load_test_case(path)

        assert len(case.actions) == 1
        assert "unknown type 'doesNotExist'" in caplog.text


class TestLoadTestCases:
    """Tests for load_test_cases."""

    def test_loads_directory_in_name_order(self, tmp_path: Path) -> None:
        """Loads every case file sorted by name."""
        write_case(tmp_path, "02.json", "TC002")
        write_case(tmp_path, "01.json", "TC001")

        cases = load_test_cases(directory=tmp_path)

        assert [case.test_id for case in cases] == ["TC001", "TC002"]

    def test_single_file_takes_precedence(self, tmp_path: Path) -> None:
        """Loads only the given file when both sources are set."""
        write_case(tmp_path, "01.json", "TC001")
        single = write_case(tmp_path, "02.json", "TC002")

        cases = load_test_cases(directory=tmp_path, file=single)

        assert [case.test_id for case in cases] == ["TC002"]

    def test_empty_directory(self, tmp_path: Path) -> None:
        """Returns no cases for an empty directory."""
        assert load_test_cases(directory=tmp_path) == []

    def test_duplicate_ids(self, tmp_path: Path) -> None:
        """Rejects two files with the same test id."""
        write_case(tmp_path, "a.json", "TC001")
        write_case(tmp_path, "b.json", "TC001")

        with pytest.raises(CaseLoadError, match="duplicate test id 'TC001'"):
            load_test_cases(directory=tmp_path)

    def test_requires_a_source(self) -> None:
        """Raises when neither directory nor file is given."""
        with pytest.raises(ValueError, match="required"):
            load_test_cases()
