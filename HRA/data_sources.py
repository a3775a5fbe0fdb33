"""
Record sources and sinks for Hospital Readmission Analytics.

Sources load raw admissions into a pandas DataFrame; normalize_admissions maps
them onto canonical columns and calendar dates, and records_from_frame turns
the rows into AdmissionRecords. Sinks accept the flattened enriched frame.
"""
import os
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd
from snowflake.snowpark import Session
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.backends import default_backend

from .config import (
    SNOWFLAKE_CONFIG, BUSINESS_RULES, ADMISSION_COLUMN_MAP,
    REQUIRED_FIELDS, CORE_FIELDS, DATE_FIELDS, ENRICHED_COLUMNS
)
from .exceptions import SourceError
from .models import AdmissionRecord, EnrichedAdmissionRecord, RejectedRecord
from .utils import parse_source_date

logger = logging.getLogger(__name__)


def get_snowflake_session(
    account: Optional[str] = None,
    role: Optional[str] = None,
    warehouse: Optional[str] = None,
    database: Optional[str] = None,
    schema: Optional[str] = None
) -> Session:
    """
    Create and return a Snowflake Snowpark session.

    Uses private key authentication from environment variables.

    Args:
        account: Snowflake account (defaults to config)
        role: Snowflake role (defaults to config)
        warehouse: Snowflake warehouse (defaults to config)
        database: Snowflake database (defaults to config)
        schema: Snowflake schema (defaults to config)

    Returns:
        Snowpark Session object

    Raises:
        ValueError: If required environment variables are not set
    """
    pkey_pem = os.getenv("MY_SF_PKEY")
    if not pkey_pem:
        raise ValueError("MY_SF_PKEY environment variable not set")

    username = os.getenv('MY_SF_USER')
    if not username:
        raise ValueError("MY_SF_USER environment variable not set")

    pkey = serialization.load_pem_private_key(
        pkey_pem.encode("utf-8"),
        password=None,
        backend=default_backend()
    )

    connection = {
        "account": account or SNOWFLAKE_CONFIG.account,
        "user": username,
        "private_key": pkey,
        "role": role or SNOWFLAKE_CONFIG.role,
        "warehouse": warehouse or SNOWFLAKE_CONFIG.warehouse,
        "database": database or SNOWFLAKE_CONFIG.database,
        "schema": schema or SNOWFLAKE_CONFIG.schema
    }

    logger.info(f"Connecting to Snowflake - Database: {connection['database']}, Schema: {connection['schema']}")
    return Session.builder.configs(connection).create()


def export_to_snowflake(
    session: Session,
    df: pd.DataFrame,
    table_name: str,
    mode: str = "overwrite"
) -> None:
    """
    Export a pandas DataFrame to a Snowflake table.

    Args:
        session: Snowpark session
        df: DataFrame to export
        table_name: Fully qualified table name (database.schema.table)
        mode: Write mode ('overwrite', 'append')

    Raises:
        ValueError: If mode is not valid
    """
    valid_modes = ["overwrite", "append"]
    if mode not in valid_modes:
        raise ValueError(f"Invalid mode '{mode}'. Must be one of: {valid_modes}")

    logger.info(f"Exporting {len(df)} rows to Snowflake table: {table_name} (mode: {mode})")

    database, schema, table = _split_table_name(table_name)
    try:
        session.write_pandas(
            df,
            table,
            database=database,
            schema=schema,
            auto_create_table=True,
            overwrite=(mode == "overwrite"),
            quote_identifiers=False
        )
        logger.info("Export complete.")
    except Exception as e:
        logger.error(f"Failed to export to {table_name}: {str(e)}")
        raise


def _split_table_name(table_name: str):
    parts = table_name.split(".")
    if len(parts) > 3:
        raise ValueError(f"Invalid table name: {table_name}")
    parts = [None] * (3 - len(parts)) + parts
    return parts[0], parts[1], parts[2]


# Normalization

def normalize_admissions(
    df: pd.DataFrame,
    column_map: Optional[Dict[str, str]] = None,
    date_format: Optional[str] = None
) -> pd.DataFrame:
    """
    Map a raw admissions frame onto canonical columns and calendar dates.

    Args:
        df: Raw admissions DataFrame
        column_map: Source column -> canonical name (default: ADMISSION_COLUMN_MAP)
        date_format: strptime format of source dates (default: BUSINESS_RULES)

    Returns:
        Normalized copy of the frame

    Raises:
        SourceError: If the patient_id or admission_date column is missing
    """
    column_map = column_map or ADMISSION_COLUMN_MAP
    date_format = date_format or BUSINESS_RULES.source_date_format

    out = df.copy()
    out.columns = [str(c).strip().lower() for c in out.columns]
    out = _apply_column_map(out, column_map)

    missing = [c for c in REQUIRED_FIELDS if c not in out.columns]
    if missing:
        raise SourceError(
            f"Admissions source is missing required columns: {missing}",
            detail={"columns": list(out.columns)}
        )

    out["patient_id"] = out["patient_id"].map(_normalize_id)

    for field in DATE_FIELDS:
        if field in out.columns:
            out[field] = _parse_date_column(out[field], date_format)
        else:
            out[field] = None

    if "length_of_stay" in out.columns:
        out["length_of_stay"] = pd.to_numeric(out["length_of_stay"], errors="coerce").astype("Int64")
    else:
        out["length_of_stay"] = pd.array([pd.NA] * len(out), dtype="Int64")

    logger.info(f"Normalized {len(out)} admission rows")
    return out


def _apply_column_map(df: pd.DataFrame, column_map: Dict[str, str]) -> pd.DataFrame:
    """
    Rename source columns to canonical names.

    When an alias maps onto a column that is already present, the canonical
    column keeps its values and gaps are filled from the alias.
    """
    out = df
    for source, target in column_map.items():
        source = source.lower()
        if source == target or source not in out.columns:
            continue
        if target in out.columns:
            logger.info(f"Coalescing column '{source}' into existing '{target}'")
            out[target] = out[target].combine_first(out[source])
            out = out.drop(columns=[source])
        else:
            out = out.rename(columns={source: target})
    return out


def _normalize_id(value) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def _parse_date_column(series: pd.Series, date_format: str) -> pd.Series:
    """Parse with the fixed format, falling back to dateutil per value."""
    parsed = pd.to_datetime(series, format=date_format, errors="coerce")
    dates = pd.Series(
        [None if pd.isna(ts) else ts.date() for ts in parsed],
        index=series.index,
        dtype=object,
        name=series.name
    )

    fallback = parsed.isna() & series.notna()
    if fallback.any():
        dates[fallback] = [
            parse_source_date(v, dayfirst=BUSINESS_RULES.dayfirst)
            for v in series[fallback]
        ]
        unparsed = int(dates[fallback].isna().sum())
        if unparsed:
            logger.warning(f"{unparsed} {series.name} values could not be parsed")

    return dates


# Frame <-> record conversion

def _cell(value):
    if value is None:
        return None
    if not isinstance(value, (str, list, dict, tuple)) and pd.isna(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


def records_from_frame(df: pd.DataFrame) -> List[AdmissionRecord]:
    """
    Build AdmissionRecords from a normalized frame.

    Non-core columns are carried in `attributes`.
    """
    extra = [c for c in df.columns if c not in CORE_FIELDS]
    records = []
    for row in df.to_dict(orient="records"):
        los = _cell(row.get("length_of_stay"))
        records.append(
            AdmissionRecord(
                patient_id=_cell(row.get("patient_id")),
                admission_date=_cell(row.get("admission_date")),
                discharge_date=_cell(row.get("discharge_date")),
                length_of_stay=int(los) if los is not None else None,
                attributes={c: _cell(row.get(c)) for c in extra},
            )
        )
    return records


def frame_from_records(records: List[EnrichedAdmissionRecord]) -> pd.DataFrame:
    """Flatten enriched records (attributes included) into a DataFrame."""
    rows = []
    for r in records:
        row = {
            "patient_id": r.patient_id,
            "admission_date": r.admission_date,
            "discharge_date": r.discharge_date,
            "length_of_stay": r.length_of_stay,
        }
        row.update(r.attributes)
        row["next_admission_date"] = r.next_admission_date
        row["days_to_readmission"] = r.days_to_readmission
        row["readmitted_within_30_days"] = r.readmitted_within_30_days
        rows.append(row)

    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=ENRICHED_COLUMNS)

    df["length_of_stay"] = df["length_of_stay"].astype("Int64")
    df["days_to_readmission"] = df["days_to_readmission"].astype("Int64")
    df["readmitted_within_30_days"] = df["readmitted_within_30_days"].astype(bool)
    return df


def frame_from_rejections(rejected: List[RejectedRecord]) -> pd.DataFrame:
    """Rejected records as a DataFrame with row, field and reason columns."""
    rows = []
    for rej in rejected:
        row = {"row": rej.row, "field": rej.field, "reason": rej.reason}
        if isinstance(rej.record, AdmissionRecord):
            row.update({
                "patient_id": rej.record.patient_id,
                "admission_date": rej.record.admission_date,
                "discharge_date": rej.record.discharge_date,
            })
            row.update(rej.record.attributes)
        rows.append(row)
    return pd.DataFrame(rows, columns=None if rows else ["row", "field", "reason"])


# Sources

class CsvAdmissionSource:
    """Admissions exported to a CSV file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> pd.DataFrame:
        logger.info(f"Loading admissions from {self.path}")
        try:
            # Keep raw text; dates and ids are normalized afterwards
            df = pd.read_csv(self.path, dtype=str, low_memory=False)
        except FileNotFoundError:
            logger.error(f"Admissions file not found at {self.path}")
            raise

        logger.info(f"Loaded {len(df)} admission rows")
        return df


class SnowflakeAdmissionSource:
    """Admissions table in Snowflake."""

    def __init__(self, session: Session, table_name: str):
        self.session = session
        self.table_name = table_name

    def load(self) -> pd.DataFrame:
        logger.info(f"Loading admissions from {self.table_name}")
        try:
            df = self.session.table(self.table_name).to_pandas()
        except Exception as e:
            raise SourceError(
                f"Could not read admissions table {self.table_name}: {e}",
                detail={"table": self.table_name}
            ) from e

        # Snowflake returns upper-case identifiers
        df.columns = [str(c).lower() for c in df.columns]
        logger.info(f"Loaded {len(df)} admission rows")
        return df


# Sinks

class CsvSink:
    """Write a frame to a CSV file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def write(self, df: pd.DataFrame) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(self.path, index=False)
        logger.info(f"Wrote {len(df)} rows to {self.path}")


class SnowflakeSink:
    """Write a frame to a Snowflake table."""

    def __init__(self, session: Session, table_name: str, mode: str = "overwrite"):
        self.session = session
        self.table_name = table_name
        self.mode = mode

    def write(self, df: pd.DataFrame) -> None:
        out = df.copy()
        out.columns = [str(c).upper() for c in out.columns]
        export_to_snowflake(self.session, out, self.table_name, mode=self.mode)
