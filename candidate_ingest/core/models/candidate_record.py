"""
Candidate-side domain records: CandidateRecord, EducationRecord, PrelistRecord.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

# Fields an upload may overwrite on an existing record.
CANDIDATE_MUTABLE_FIELDS = (
    "first_name",
    "surname",
    "other_name",
    "gender",
    "state",
    "lga",
    "department",
    "mode_of_entry",
)

PRELIST_MUTABLE_FIELDS = (
    "first_name",
    "surname",
    "other_name",
    "gender",
    "state",
    "lga",
    "program_choice_1",
    "program_choice_2",
    "program_choice_3",
)


class CandidateRecord(BaseModel):
    """
    A candidate, identified by JAMB registration number.

    Operational fields (password hash, login and completion flags) are
    set once on creation and never touched by uploads afterwards.
    """

    id: str | None = None
    jamb_reg_no: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    other_name: str | None = None
    gender: Literal["male", "female", "other"] = "other"
    date_of_birth: date | None = None
    email: str | None = None
    phone: str | None = None
    state: str | None = None
    lga: str | None = None
    department: str | None = None
    mode_of_entry: Literal["UTME", "DE"] = "UTME"

    password_hash: str | None = None
    is_first_login: bool = True
    registration_completed: bool = False
    biodata_completed: bool = False
    education_completed: bool = False
    next_of_kin_completed: bool = False
    sponsor_completed: bool = False
    is_active: bool = True

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class SubjectScore(BaseModel):
    subject: str = Field(..., min_length=1)
    score: int = Field(0, ge=0, le=100)


class EducationRecord(BaseModel):
    """JAMB exam scores attached to a newly created UTME candidate."""

    id: str | None = None
    candidate_id: str | None = None
    jamb_score: int = Field(..., ge=0, le=400)
    jamb_subjects: list[SubjectScore] = Field(default_factory=list)
    exam_type: str = "JAMB"
    exam_year: int = Field(default_factory=lambda: date.today().year)


class PrelistRecord(BaseModel):
    """A row of the national exam board's pre-admission roster."""

    id: str | None = None
    jamb_reg_no: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    other_name: str | None = None
    date_of_birth: date
    gender: Literal["male", "female"]
    phone: str = Field(..., min_length=1)
    email: str | None = None
    state: str = Field(..., min_length=1)
    lga: str = Field(..., min_length=1)
    program_choice_1: str = Field(..., min_length=1)
    program_choice_2: str | None = None
    program_choice_3: str | None = None
    jamb_score: int = Field(..., ge=0, le=400)
    is_uploaded: bool = True
    uploaded_by: str | None = None
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
