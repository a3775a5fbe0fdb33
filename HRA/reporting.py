"""
Reporting views over the enriched admissions frame.

These are the dashboard measures: readmission rate and average days to
readmission per dimension, length of stay per severity level, and the
headline KPIs.
"""
import logging
from typing import Dict

import pandas as pd

from .utils import safe_division

logger = logging.getLogger(__name__)


def _require(df: pd.DataFrame, *columns: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Enriched frame is missing columns: {missing}")


def readmission_rate_by(df: pd.DataFrame, dimension: str) -> pd.DataFrame:
    """
    Readmission rate per value of a grouping dimension (region, diagnosis, ...).

    readmission_rate = readmissions / distinct_patients.
    avg_days_to_readmission only averages over readmitted admissions.

    Args:
        df: Enriched admissions frame
        dimension: Column to group by

    Returns:
        DataFrame sorted by readmission_rate descending
    """
    _require(df, dimension, "patient_id", "readmitted_within_30_days", "days_to_readmission")

    flagged = df["readmitted_within_30_days"].astype(bool)
    work = df.assign(
        _READMIT=flagged.astype(int),
        _READMIT_DAYS=pd.to_numeric(df["days_to_readmission"], errors="coerce").where(flagged),
    )

    summary = (
        work.groupby(dimension, dropna=False)
        .agg(
            admissions=("patient_id", "size"),
            distinct_patients=("patient_id", "nunique"),
            readmissions=("_READMIT", "sum"),
            avg_days_to_readmission=("_READMIT_DAYS", "mean"),
        )
        .reset_index()
    )
    summary["readmission_rate"] = [
        safe_division(r, p) for r, p in zip(summary["readmissions"], summary["distinct_patients"])
    ]

    summary = summary[[
        dimension, "admissions", "distinct_patients", "readmissions",
        "readmission_rate", "avg_days_to_readmission"
    ]]
    return summary.sort_values("readmission_rate", ascending=False, kind="mergesort").reset_index(drop=True)


def length_of_stay_by(df: pd.DataFrame, dimension: str = "severity_level") -> pd.DataFrame:
    """
    Length of stay statistics per value of a dimension.

    Args:
        df: Enriched admissions frame
        dimension: Column to group by (default: severity_level)

    Returns:
        DataFrame with admissions, avg/min/max length_of_stay per group
    """
    _require(df, dimension, "length_of_stay")

    work = df.assign(_LOS=pd.to_numeric(df["length_of_stay"], errors="coerce").astype(float))
    return (
        work.groupby(dimension, dropna=False)
        .agg(
            admissions=("_LOS", "size"),
            avg_length_of_stay=("_LOS", "mean"),
            min_length_of_stay=("_LOS", "min"),
            max_length_of_stay=("_LOS", "max"),
        )
        .reset_index()
    )


def readmission_kpis(df: pd.DataFrame) -> Dict[str, float]:
    """Headline measures for the whole enriched frame."""
    _require(df, "patient_id", "readmitted_within_30_days", "days_to_readmission")

    flagged = df["readmitted_within_30_days"].astype(bool)
    readmissions = int(flagged.sum())
    patients = int(df["patient_id"].nunique())
    readmit_days = pd.to_numeric(df.loc[flagged, "days_to_readmission"], errors="coerce").dropna()

    if "length_of_stay" in df.columns:
        los = pd.to_numeric(df["length_of_stay"], errors="coerce").dropna()
    else:
        los = pd.Series(dtype=float)

    kpis = {
        "total_admissions": int(len(df)),
        "distinct_patients": patients,
        "readmissions": readmissions,
        "readmission_rate": safe_division(readmissions, patients),
        "avg_days_to_readmission": float(readmit_days.mean()) if len(readmit_days) else None,
        "avg_length_of_stay": float(los.mean()) if len(los) else None,
    }
    logger.debug(f"Readmission KPIs: {kpis}")
    return kpis
