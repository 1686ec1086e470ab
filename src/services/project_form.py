"""Mutation helpers for the project configuration form.

Every helper returns a new `ProjectMetadata`; the input is never modified.
Rosters (supervisors, jury members) are bounded above by their capacity and
below by one entry: removing the last remaining name is a no-op.
"""

from __future__ import annotations

from datetime import date

from core.config import Settings
from core.exceptions import RosterIndexError, UnknownProjectFieldError
from schemas.project import ProjectField, ProjectMetadata, Roster


MIN_ROSTER_ENTRIES: int = 1
ACADEMIC_YEAR_OPTIONS: int = 5
# September; earlier months still belong to the previous academic year
ACADEMIC_YEAR_START_MONTH: int = 9


def academic_year_options(
    today: date, count: int = ACADEMIC_YEAR_OPTIONS
) -> list[str]:
    """Return `count` labels like "2025-2026", starting at the current year."""
    start_year = today.year if today.month >= ACADEMIC_YEAR_START_MONTH else today.year - 1
    return [f"{y}-{y + 1}" for y in range(start_year, start_year + count)]


def default_project_metadata(settings: Settings, today: date) -> ProjectMetadata:
    """Form contents at application start."""
    return ProjectMetadata(
        university=settings.DEFAULT_UNIVERSITY,
        school=settings.DEFAULT_SCHOOL,
        academic_year=settings.DEFAULT_ACADEMIC_YEAR or academic_year_options(today)[0],
        supervisors=[""],
        jury_members=[""],
    )


def apply_field_update(
    metadata: ProjectMetadata, field: ProjectField | str, value: str
) -> ProjectMetadata:
    """Set one free-text field."""
    try:
        project_field = ProjectField(field)
    except ValueError as e:
        raise UnknownProjectFieldError(f"Unknown project field: {field}") from e
    return metadata.model_copy(update={project_field.value: value})


def add_roster_entry(metadata: ProjectMetadata, roster: Roster) -> ProjectMetadata:
    """Append an empty slot; a full roster is returned unchanged."""
    names = metadata.roster(roster)
    if len(names) >= roster.capacity:
        return metadata
    return metadata.model_copy(update={roster.value: [*names, ""]})


def set_roster_entry(
    metadata: ProjectMetadata, roster: Roster, index: int, value: str
) -> ProjectMetadata:
    names = metadata.roster(roster)
    _check_index(roster, names, index)
    names[index] = value
    return metadata.model_copy(update={roster.value: names})


def remove_roster_entry(
    metadata: ProjectMetadata, roster: Roster, index: int
) -> ProjectMetadata:
    """Drop the entry at `index` unless it would leave the roster empty."""
    names = metadata.roster(roster)
    if len(names) <= MIN_ROSTER_ENTRIES:
        return metadata
    _check_index(roster, names, index)
    return metadata.model_copy(
        update={roster.value: [n for i, n in enumerate(names) if i != index]}
    )


def _check_index(roster: Roster, names: list[str], index: int) -> None:
    if not 0 <= index < len(names):
        raise RosterIndexError(
            f"No {roster.value} entry at position {index} (size {len(names)})"
        )
