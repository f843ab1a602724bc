"""Best-effort parsing of pasted roster text into athlete rows."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable

from . import models
from .errors import PersistenceError
from .repository import AthleteRepository

logger = logging.getLogger(__name__)

__all__ = [
    "ImportResult",
    "ParsedRow",
    "build_row",
    "detect_delimiter",
    "is_header",
    "parse",
    "split_fields",
    "submit",
    "valid_rows",
]

TAB = "\t"
COMMA = ","
WHITESPACE = None

HEADER_HINTS = ("first", "last", "name", "grade")


@dataclass
class ParsedRow:
    first_name: str = ""
    last_name: str = ""
    grade: int | None = None
    level: str | None = None
    gender: str | None = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict[str, object]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "grade": self.grade,
            "level": self.level,
            "gender": self.gender,
            "error": self.error,
        }


@dataclass
class ImportResult:
    added: list = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def detect_delimiter(line: str) -> str | None:
    """Tab wins over comma; otherwise fields are split on runs of whitespace."""

    if TAB in line:
        return TAB
    if COMMA in line:
        return COMMA
    return WHITESPACE


def split_fields(line: str, delimiter: str | None) -> list[str]:
    if delimiter is WHITESPACE:
        return re.split(r"\s+", line.strip())
    return [part.strip() for part in line.split(delimiter)]


def is_header(line: str) -> bool:
    lowered = line.lower()
    return any(hint in lowered for hint in HEADER_HINTS)


def _parse_grade(value: str) -> int | None:
    match = re.match(r"^\s*([+-]?\d+)", value)
    if not match:
        return None
    return int(match.group(1))


def _parse_level(value: str) -> str:
    if value.lower().startswith("v"):
        return models.Athlete.Level.VARSITY
    return models.Athlete.Level.JV


def _parse_gender(value: str) -> str:
    lowered = value.lower()
    if lowered.startswith("g") or lowered in ("f", "female"):
        return models.Athlete.Gender.GIRLS
    return models.Athlete.Gender.BOYS


def _names(row: ParsedRow, fields: list[str]) -> None:
    row.first_name, row.last_name = fields[0], fields[1]


def _with_grade(row: ParsedRow, fields: list[str]) -> None:
    _names(row, fields)
    row.grade = _parse_grade(fields[2])


def _with_level(row: ParsedRow, fields: list[str]) -> None:
    _with_grade(row, fields)
    row.level = _parse_level(fields[3])


def _with_gender(row: ParsedRow, fields: list[str]) -> None:
    _with_level(row, fields)
    row.gender = _parse_gender(fields[4])


def _single_name(row: ParsedRow, fields: list[str]) -> None:
    row.first_name = fields[0]
    row.error = "Only one name found - needs first and last name"


ROW_BUILDERS: dict[int, Callable[[ParsedRow, list[str]], None]] = {
    5: _with_gender,
    4: _with_level,
    3: _with_grade,
    2: _names,
    1: _single_name,
}


def build_row(fields: list[str]) -> ParsedRow:
    """Map split fields onto a row according to how many there are."""

    row = ParsedRow()
    builder = ROW_BUILDERS.get(min(len(fields), 5))
    if builder is not None:
        builder(row, fields)
    if not row.first_name and row.error is None:
        row.error = "Missing first name"
    if not row.last_name and row.error is None:
        row.error = "Missing last name"
    return row


def parse(raw_text: str) -> list[ParsedRow]:
    lines = [line.strip() for line in (raw_text or "").splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return []
    if is_header(lines[0]):
        lines = lines[1:]
    return [build_row(split_fields(line, detect_delimiter(line))) for line in lines]


def valid_rows(rows: Iterable[ParsedRow]) -> list[ParsedRow]:
    return [row for row in rows if row.is_valid]


DEFAULTS = {
    "level": models.Athlete.Level.JV,
    "gender": models.Athlete.Gender.BOYS,
}


def submit(
    rows: Iterable[ParsedRow],
    team: models.Team,
    repository: AthleteRepository | None = None,
    defaults: dict[str, str] | None = None,
) -> ImportResult:
    """Create an active athlete for each valid row, one at a time.

    Rows without a level or gender take them from ``defaults``.
    """

    repository = repository or AthleteRepository()
    defaults = {**DEFAULTS, **(defaults or {})}
    result = ImportResult()
    for index, row in enumerate(valid_rows(rows), start=1):
        try:
            athlete = repository.create(
                team_id=team.pk,
                first_name=row.first_name,
                last_name=row.last_name,
                grade=row.grade,
                level=row.level or defaults["level"],
                gender=row.gender or defaults["gender"],
                active=True,
            )
        except PersistenceError as exc:
            result.errors.append(f"Row {index}: {exc.message}")
            continue
        result.added.append(athlete)
    logger.info(
        "imported %d athletes for team %s (%d failed)",
        len(result.added),
        team.pk,
        len(result.errors),
    )
    return result
