"""
HRA - Hospital Readmission Analytics

Enriches hospital admission records with 30-day readmission flags and
reduces them into the readmission reporting views.
"""

__version__ = "1.0.0"
__author__ = "Analytics Team"

# Main pipeline execution
from .pipeline import run_readmission_pipeline, main

# Configuration
from .config import (
    SNOWFLAKE_CONFIG,
    TABLE_CONFIG,
    BUSINESS_RULES,
    ADMISSION_COLUMN_MAP,
)

# Records and errors
from .models import (
    AdmissionRecord,
    EnrichedAdmissionRecord,
    RejectedRecord,
    ReadmissionResult,
)
from .exceptions import HRAError, MalformedRecord, SourceError

# Readmission window calculation
from .readmission import calculate_readmissions, flag_readmissions

# Data sources
from .data_sources import (
    get_snowflake_session,
    export_to_snowflake,
    normalize_admissions,
    records_from_frame,
    frame_from_records,
    CsvAdmissionSource,
    SnowflakeAdmissionSource,
    CsvSink,
    SnowflakeSink,
)

# Reporting
from .reporting import readmission_rate_by, length_of_stay_by, readmission_kpis

# Utilities
from .utils import setup_logging, Timer

__all__ = [
    # Main pipeline
    "run_readmission_pipeline",
    "main",

    # Configuration
    "SNOWFLAKE_CONFIG",
    "TABLE_CONFIG",
    "BUSINESS_RULES",
    "ADMISSION_COLUMN_MAP",

    # Records and errors
    "AdmissionRecord",
    "EnrichedAdmissionRecord",
    "RejectedRecord",
    "ReadmissionResult",
    "HRAError",
    "MalformedRecord",
    "SourceError",

    # Calculation
    "calculate_readmissions",
    "flag_readmissions",

    # Data sources
    "get_snowflake_session",
    "export_to_snowflake",
    "normalize_admissions",
    "records_from_frame",
    "frame_from_records",
    "CsvAdmissionSource",
    "SnowflakeAdmissionSource",
    "CsvSink",
    "SnowflakeSink",

    # Reporting
    "readmission_rate_by",
    "length_of_stay_by",
    "readmission_kpis",

    # Utilities
    "setup_logging",
    "Timer",
]
