"""Project metadata schemas for the report configuration form."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


MAX_SUPERVISORS: int = 2
MAX_JURY_MEMBERS: int = 5


class Roster(str, Enum):
    """Ordered name lists of the project form."""

    SUPERVISORS = "supervisors"
    JURY_MEMBERS = "jury_members"

    @property
    def capacity(self) -> int:
        return MAX_SUPERVISORS if self is Roster.SUPERVISORS else MAX_JURY_MEMBERS


class ProjectField(str, Enum):
    """Free-text fields editable through the field-level setter."""

    UNIVERSITY = "university"
    SCHOOL = "school"
    ACADEMIC_YEAR = "academic_year"
    TITLE = "title"
    STUDENT_NAME = "student_name"
    PROGRAM = "program"
    DESCRIPTION = "description"
    KEYWORDS = "keywords"
    CUSTOM_INSTRUCTIONS = "custom_instructions"


class ProjectMetadata(BaseModel):
    """Academic metadata of a PFE project, as entered in the form."""

    model_config = ConfigDict(validate_assignment=True)

    university: str = ""
    school: str = ""
    academic_year: str = ""
    title: str = ""
    student_name: str = ""
    supervisors: list[str] = Field(default_factory=list, max_length=MAX_SUPERVISORS)
    jury_members: list[str] = Field(default_factory=list, max_length=MAX_JURY_MEMBERS)
    program: str = Field(default="", description="Program / track (filière)")
    description: str = ""
    keywords: str = ""
    custom_instructions: str = ""

    def roster(self, roster: Roster) -> list[str]:
        return list(getattr(self, roster.value))

    def named_supervisors(self) -> list[str]:
        """Supervisor names with blank slots dropped."""
        return [s for s in self.supervisors if s.strip() != ""]

    def named_jury_members(self) -> list[str]:
        return [j for j in self.jury_members if j.strip() != ""]


class FieldUpdateRequest(BaseModel):
    value: str = Field(..., max_length=20_000)


class RosterEntryRequest(BaseModel):
    value: str = Field(..., max_length=200)
