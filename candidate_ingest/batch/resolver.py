"""
Dedup/upsert resolver: decides whether a validated row creates a record,
updates an existing one, or is rejected as a duplicate.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel

from candidate_ingest.core.models import (
    CANDIDATE_MUTABLE_FIELDS,
    PRELIST_MUTABLE_FIELDS,
    CandidateRecord,
    EducationRecord,
    PrelistRecord,
    RowValidationResult,
    SubjectScore,
)
from candidate_ingest.observability.logger import get_logger
from candidate_ingest.warehouse.connection import DuplicateKeyError

logger = get_logger(__name__)

SUBJECT_SLOTS = 4


class DuplicatePolicy(str, Enum):
    """What happens when a row's JAMB number already exists."""

    REJECT = "reject"
    UPDATE = "update"


class Resolution(BaseModel):
    """
    Outcome of resolving one row against storage.

    Attributes:
        outcome: "created", "updated" or "duplicate"
        natural_key: JAMB registration number of the row
        record_id: Id of the created or updated record (None for duplicates)
    """

    outcome: Literal["created", "updated", "duplicate"]
    natural_key: str
    record_id: str | None = None


def build_candidate(natural_key: str, fields: dict[str, Any]) -> CandidateRecord:
    """New candidate from validated fields, operational flags at their defaults."""
    values = {
        name: fields[name]
        for name in (
            "first_name",
            "surname",
            "other_name",
            "gender",
            "date_of_birth",
            "email",
            "phone",
            "state",
            "lga",
            "department",
            "mode_of_entry",
        )
        if fields.get(name) is not None
    }
    return CandidateRecord(jamb_reg_no=natural_key, **values)


def build_education(candidate: CandidateRecord, fields: dict[str, Any]) -> EducationRecord | None:
    """
    Education record for a new UTME candidate with a JAMB score.

    Subjects come from subject_1..4 with score_1..4; a subject without a
    score is recorded with score 0.
    """
    if candidate.mode_of_entry != "UTME" or fields.get("jamb_score") is None:
        return None

    subjects = []
    for slot in range(1, SUBJECT_SLOTS + 1):
        subject = fields.get(f"subject_{slot}")
        if subject:
            subjects.append(SubjectScore(subject=subject, score=fields.get(f"score_{slot}") or 0))

    return EducationRecord(jamb_score=fields["jamb_score"], jamb_subjects=subjects)


def build_prelist(natural_key: str, fields: dict[str, Any], uploaded_by: str | None) -> PrelistRecord:
    values = {
        name: value
        for name, value in fields.items()
        if name in PrelistRecord.model_fields and value is not None
    }
    values.pop("jamb_reg_no", None)
    return PrelistRecord(jamb_reg_no=natural_key, uploaded_by=uploaded_by, **values)


class UpsertResolver:
    """
    Applies the duplicate policy for one record type's store.

    The policy is fixed when the resolver is built, so every row of a run
    is resolved the same way.
    """

    def __init__(
        self,
        candidate_store,
        prelist_store,
        policy: DuplicatePolicy = DuplicatePolicy.REJECT
    ):
        """
        Initialize the resolver.

        Args:
            candidate_store: CandidateStore (or any object with the same methods)
            prelist_store: PrelistStore (or any object with the same methods)
            policy: REJECT or UPDATE existing records
        """
        self.candidate_store = candidate_store
        self.prelist_store = prelist_store
        self.policy = DuplicatePolicy(policy)

    def resolve(self, result: RowValidationResult, uploaded_by: str | None = None) -> Resolution:
        """
        Create, update or reject one validated row.

        Args:
            result: A passing RowValidationResult
            uploaded_by: Actor recorded on prelist rows

        Returns:
            Resolution

        Raises:
            ValueError: The result did not pass validation or has no key
            Exception: Storage failures other than unique violations propagate
        """
        if not result.passed or not result.natural_key:
            raise ValueError("Only rows that passed validation can be resolved")

        if result.record_type == "prelist_score":
            return self._resolve_prelist(result, uploaded_by)
        return self._resolve_candidate(result)

    def _resolve_candidate(self, result: RowValidationResult) -> Resolution:
        key = result.natural_key
        existing = self.candidate_store.get_by_jamb_no(key)

        if existing is not None:
            return self._resolve_existing(
                key, str(existing["id"]), result.fields, CANDIDATE_MUTABLE_FIELDS,
                self.candidate_store,
            )

        candidate = build_candidate(key, result.fields)
        education = build_education(candidate, result.fields)
        try:
            record_id = self.candidate_store.insert_candidate(candidate, education)
        except DuplicateKeyError:
            return self._resolve_lost_race(
                key, result.fields, CANDIDATE_MUTABLE_FIELDS, self.candidate_store
            )

        return Resolution(outcome="created", natural_key=key, record_id=record_id)

    def _resolve_prelist(self, result: RowValidationResult, uploaded_by: str | None) -> Resolution:
        key = result.natural_key
        existing = self.prelist_store.get_by_jamb_no(key)

        if existing is not None:
            return self._resolve_existing(
                key, str(existing["id"]), result.fields, PRELIST_MUTABLE_FIELDS,
                self.prelist_store,
            )

        try:
            record_id = self.prelist_store.insert(build_prelist(key, result.fields, uploaded_by))
        except DuplicateKeyError:
            return self._resolve_lost_race(
                key, result.fields, PRELIST_MUTABLE_FIELDS, self.prelist_store
            )

        return Resolution(outcome="created", natural_key=key, record_id=record_id)

    def _resolve_lost_race(
        self,
        key: str,
        fields: dict[str, Any],
        mutable_fields: tuple[str, ...],
        store
    ) -> Resolution:
        """A concurrent upload created the record between lookup and insert."""
        logger.info(
            f"Record {key} was created concurrently; applying {self.policy.value} policy",
            extra={"natural_key": key},
        )
        existing = store.get_by_jamb_no(key)
        if existing is None:
            return Resolution(outcome="duplicate", natural_key=key)
        return self._resolve_existing(key, str(existing["id"]), fields, mutable_fields, store)

    def _resolve_existing(
        self,
        key: str,
        record_id: str,
        fields: dict[str, Any],
        mutable_fields: tuple[str, ...],
        store
    ) -> Resolution:
        if self.policy is DuplicatePolicy.REJECT:
            return Resolution(outcome="duplicate", natural_key=key)

        # Absent fields keep their stored value
        changes = {name: fields[name] for name in mutable_fields if name in fields}
        store.update_mutable_fields(record_id, changes)
        return Resolution(outcome="updated", natural_key=key, record_id=record_id)
