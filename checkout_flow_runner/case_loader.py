"""Loading of test case JSON files."""

import json
import logging
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from checkout_flow_runner.errors import CaseLoadError
from checkout_flow_runner.models.actions import UnknownAction
from checkout_flow_runner.models.case import TestCase

log = logging.getLogger(__name__)


def discover_case_files(directory: Path) -> Sequence[Path]:
    """List ``*.json`` case files, skipping names reserved with a ``_`` prefix."""
    if not directory.is_dir():
        raise FileNotFoundError(f"Test case directory not found: {directory}")
    return sorted(
        path
        for path in directory.glob("*.json")
        if path.is_file() and not path.name.startswith("_")
    )


def load_test_case(path: Path) -> TestCase:
    """Load and validate one test case file.

    Raises:
        FileNotFoundError: If the file does not exist
        CaseLoadError: If the file cannot be read, is not valid JSON or fails
            validation

    """
    if not path.is_file():
        raise FileNotFoundError(f"Test case file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CaseLoadError(path, f"unreadable: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CaseLoadError(path, f"invalid JSON: {exc}") from exc

    try:
        case = TestCase.model_validate(data)
    except ValidationError as exc:
        raise CaseLoadError(path, str(exc)) from exc

    for index, action in enumerate(case.actions, start=1):
        if isinstance(action, UnknownAction):
            log.warning(
                "%s: action %d has unknown type '%s' and will be skipped",
                path.name,
                index,
                action.type,
            )
    return case


def load_test_cases(
    directory: Path | None = None, file: Path | None = None
) -> Sequence[TestCase]:
    """Load a single file if given, otherwise every case file in ``directory``.

    Raises:
        ValueError: If neither source is given or test ids are duplicated

    """
    if file is not None:
        paths: Sequence[Path] = [file]
    elif directory is not None:
        paths = discover_case_files(directory)
    else:
        raise ValueError("Either a test case directory or file is required")

    cases = [load_test_case(path) for path in paths]

    seen: dict[str, Path] = {}
    for path, case in zip(paths, cases, strict=True):
        if case.test_id in seen:
            raise CaseLoadError(
                path,
                f"duplicate test id '{case.test_id}' (also in {seen[case.test_id]})",
            )
        seen[case.test_id] = path

    log.info("Loaded %d test case(s)", len(cases))
    return cases
