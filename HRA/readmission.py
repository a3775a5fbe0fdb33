"""
Readmission window calculation.

For each patient, admissions are ordered by admission date and each stay is
linked to the patient's next admission. A stay counts as a readmission when
the next admission starts no more than `threshold_days` after discharge
(inclusive). Same-date admissions keep their input order.

Two entry points share these semantics:
- calculate_readmissions: record-based, reports malformed rows alongside output
- flag_readmissions: columnar variant over a normalized pandas DataFrame
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from operator import attrgetter
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .config import BUSINESS_RULES
from .exceptions import MalformedRecord
from .models import (
    AdmissionRecord, EnrichedAdmissionRecord, RejectedRecord, ReadmissionResult
)
from .utils import days_between

logger = logging.getLogger(__name__)


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return bool(pd.isna(value))


def validate_admission(record: AdmissionRecord) -> None:
    """
    Check that a record can be grouped and ordered.

    Raises:
        MalformedRecord: If patient_id or admission_date is absent
    """
    if _is_blank(record.patient_id):
        raise MalformedRecord("patient_id", record)
    if record.admission_date is None:
        raise MalformedRecord("admission_date", record)


def group_by_patient(
    records: Iterable[AdmissionRecord]
) -> Dict[str, List[AdmissionRecord]]:
    """
    Partition records by patient_id.

    Groups appear in order of each patient's first record; each group keeps
    input order.
    """
    groups: Dict[str, List[AdmissionRecord]] = {}
    for record in records:
        groups.setdefault(record.patient_id, []).append(record)
    return groups


def enrich_patient_admissions(
    admissions: List[AdmissionRecord],
    threshold_days: int
) -> List[EnrichedAdmissionRecord]:
    """
    Link one patient's admissions to their successors.

    Args:
        admissions: All admissions for a single patient, in input order
        threshold_days: Readmission window in days (inclusive)

    Returns:
        Enriched records in chronological order
    """
    # sorted() is stable: same-date admissions stay in input order
    ordered = sorted(admissions, key=attrgetter("admission_date"))

    enriched = []
    for i, record in enumerate(ordered):
        next_date = ordered[i + 1].admission_date if i + 1 < len(ordered) else None
        gap = days_between(record.discharge_date, next_date)
        enriched.append(
            EnrichedAdmissionRecord.from_admission(
                record,
                next_admission_date=next_date,
                days_to_readmission=gap,
                readmitted_within_30_days=gap is not None and gap <= threshold_days,
            )
        )
    return enriched


def _enrich_partition(
    groups: List[List[AdmissionRecord]],
    threshold_days: int
) -> List[EnrichedAdmissionRecord]:
    out = []
    for admissions in groups:
        out.extend(enrich_patient_admissions(admissions, threshold_days))
    return out


def _chunk(items: list, n_chunks: int) -> List[list]:
    size = max(1, -(-len(items) // n_chunks))
    return [items[i:i + size] for i in range(0, len(items), size)]


def calculate_readmissions(
    records: Iterable[AdmissionRecord],
    threshold_days: Optional[int] = None,
    max_workers: Optional[int] = None
) -> ReadmissionResult:
    """
    Enrich admission records with next-admission and readmission fields.

    Records missing patient_id or admission_date are rejected as
    MalformedRecord and reported in the result; they never abort the batch.
    A missing discharge date leaves days_to_readmission empty and the flag
    false. Negative gaps (next admission before discharge) are passed through
    as-is and still satisfy the threshold.

    Args:
        records: Admission records in any order
        threshold_days: Readmission window (default: BUSINESS_RULES)
        max_workers: Threads for scanning patient partitions (default: BUSINESS_RULES)

    Returns:
        ReadmissionResult with one enriched or rejected entry per input record
    """
    if threshold_days is None:
        threshold_days = BUSINESS_RULES.readmit_threshold_days
    if max_workers is None:
        max_workers = BUSINESS_RULES.max_workers

    valid: List[AdmissionRecord] = []
    rejected: List[RejectedRecord] = []

    for row, record in enumerate(records):
        try:
            validate_admission(record)
        except MalformedRecord as e:
            logger.warning(f"Rejecting row {row}: {e.message}")
            rejected.append(RejectedRecord(row=row, record=record, error=e))
            continue

        if (record.discharge_date is not None
                and record.discharge_date < record.admission_date):
            logger.warning(
                f"Row {row}: discharge {record.discharge_date} precedes "
                f"admission {record.admission_date} for patient {record.patient_id}"
            )
        valid.append(record)

    groups = list(group_by_patient(valid).values())
    logger.info(
        f"Calculating readmissions for {len(valid)} admissions "
        f"across {len(groups)} patients (window: {threshold_days} days)"
    )

    if max_workers > 1 and len(groups) > 1:
        scan = partial(_enrich_partition, threshold_days=threshold_days)
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            # map() yields in submission order, so the merge is a plain concat
            parts = list(pool.map(scan, _chunk(groups, max_workers)))
        enriched = [r for part in parts for r in part]
    else:
        enriched = _enrich_partition(groups, threshold_days)

    result = ReadmissionResult(enriched=enriched, rejected=rejected)
    logger.info(
        f"Enriched {len(result.enriched)} admissions, "
        f"{result.readmission_count} readmissions, "
        f"{len(result.rejected)} rejected"
    )
    return result


def flag_readmissions(
    df: pd.DataFrame,
    threshold_days: Optional[int] = None
) -> pd.DataFrame:
    """
    Columnar readmission flags for a normalized admissions DataFrame.

    Adds next_admission_date, days_to_readmission (nullable Int64) and
    readmitted_within_30_days. Rows come back grouped by patient in
    chronological order with their original index labels. Patient ids may
    mix types; ids of different types are different patients.

    Args:
        df: DataFrame with canonical patient_id / admission_date / discharge_date columns
        threshold_days: Readmission window (default: BUSINESS_RULES)

    Returns:
        New DataFrame with the three derived columns

    Raises:
        MalformedRecord: If any row lacks patient_id or admission_date
    """
    if threshold_days is None:
        threshold_days = BUSINESS_RULES.readmit_threshold_days

    out = df.copy()
    admit = pd.to_datetime(out["admission_date"], errors="coerce")
    if "discharge_date" in out.columns:
        discharge = pd.to_datetime(out["discharge_date"], errors="coerce")
    else:
        discharge = pd.Series(pd.NaT, index=out.index, dtype="datetime64[ns]")

    for field, missing in (
        ("patient_id", out["patient_id"].map(_is_blank)),
        ("admission_date", admit.isna()),
    ):
        if missing.any():
            rows = out.index[missing].tolist()
            raise MalformedRecord(
                field,
                record=rows,
                message=f"{len(rows)} rows missing required field '{field}': {rows}"
            )

    out["_ADMIT"] = admit
    out["_DSCHRG"] = discharge
    # Text key so mixed id types sort; type name keeps 1 and "1" apart
    out["_PID"] = out["patient_id"].map(lambda v: f"{type(v).__name__}:{v}")

    # Two stable passes: by admission date, then by patient
    out = out.sort_values("_ADMIT", kind="mergesort")
    out = out.sort_values("_PID", kind="mergesort")

    out["next_admission_date"] = out.groupby("_PID", sort=False)["_ADMIT"].shift(-1)
    gap = (out["next_admission_date"] - out["_DSCHRG"]).dt.days

    out["days_to_readmission"] = gap.astype("Int64")
    out["readmitted_within_30_days"] = gap.notna() & (gap <= threshold_days)

    return out.drop(columns=["_ADMIT", "_DSCHRG", "_PID"])
