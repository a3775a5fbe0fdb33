"""
Record types for the readmission window calculation.
"""
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, List, Mapping, Optional

from .exceptions import MalformedRecord


@dataclass(frozen=True)
class AdmissionRecord:
    """
    One hospital stay as read from a source.

    patient_id and admission_date are optional here because a source row may
    lack them; the calculator rejects such records instead of enriching them.
    Everything that is not a core field lives in `attributes` and is carried
    through unchanged (diagnosis, severity_level, procedures, region, ...).
    """
    patient_id: Optional[str]
    admission_date: Optional[date]
    discharge_date: Optional[date] = None
    length_of_stay: Optional[int] = None
    attributes: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def derived_length_of_stay(self) -> Optional[int]:
        """Provided length of stay, else discharge minus admission in days."""
        if self.length_of_stay is not None:
            return self.length_of_stay
        if self.admission_date is None or self.discharge_date is None:
            return None
        return (self.discharge_date - self.admission_date).days


@dataclass(frozen=True)
class EnrichedAdmissionRecord(AdmissionRecord):
    """AdmissionRecord plus the readmission window fields."""
    next_admission_date: Optional[date] = None
    days_to_readmission: Optional[int] = None
    readmitted_within_30_days: bool = False

    @classmethod
    def from_admission(
        cls,
        record: AdmissionRecord,
        next_admission_date: Optional[date],
        days_to_readmission: Optional[int],
        readmitted_within_30_days: bool
    ) -> "EnrichedAdmissionRecord":
        base = {f.name: getattr(record, f.name) for f in fields(AdmissionRecord)}
        base["length_of_stay"] = record.derived_length_of_stay()
        return cls(
            **base,
            next_admission_date=next_admission_date,
            days_to_readmission=days_to_readmission,
            readmitted_within_30_days=readmitted_within_30_days,
        )


@dataclass(frozen=True)
class RejectedRecord:
    """A record that could not be enriched, with its input position."""
    row: int
    record: Any
    error: MalformedRecord

    @property
    def field(self) -> str:
        return self.error.field

    @property
    def reason(self) -> str:
        return self.error.message


@dataclass
class ReadmissionResult:
    """Output of one calculator run: enriched records plus rejections."""
    enriched: List[EnrichedAdmissionRecord] = field(default_factory=list)
    rejected: List[RejectedRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.enriched) + len(self.rejected)

    @property
    def readmission_count(self) -> int:
        return sum(1 for r in self.enriched if r.readmitted_within_30_days)

    @property
    def patient_count(self) -> int:
        return len({r.patient_id for r in self.enriched})
