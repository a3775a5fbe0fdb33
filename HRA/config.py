"""
Configuration and constants for Hospital Readmission Analytics.
"""
from typing import Dict, List
from dataclasses import dataclass


@dataclass
class SnowflakeConfig:
    """Snowflake connection configuration."""
    account: str = "hra-analytics.us-east-1"
    role: str = "HRA_ANALYST_ROLE"
    warehouse: str = "HRA_ANALYTICS_XS_WH"
    database: str = "HRA_DB"
    schema: str = "STAGE"


@dataclass
class TableConfig:
    """Table naming configuration."""
    database: str = "HRA_DB"
    stage_schema: str = "STAGE"
    base_schema: str = "BASE"

    def admissions_table(self) -> str:
        """Get admissions source table name (as cataloged by the crawler)."""
        return f"{self.database}.{self.stage_schema}.HOSPITAL_ADMISSIONS"

    def enriched_output_table(self) -> str:
        """Get enriched readmission output table name."""
        return f"{self.database}.{self.base_schema}.ADMISSIONS_READMISSION_FLAGS"

    def rejects_output_table(self) -> str:
        """Get rejected record output table name."""
        return f"{self.database}.{self.base_schema}.ADMISSIONS_REJECTED"


@dataclass
class BusinessRulesConfig:
    """Business rules and thresholds."""
    # Readmission window, inclusive
    readmit_threshold_days: int = 30

    # Source dates arrive as day-month-year text
    source_date_format: str = "%d-%m-%Y"
    dayfirst: bool = True

    # Patient partitions scanned in parallel when > 1
    max_workers: int = 1


# Global configuration instances
SNOWFLAKE_CONFIG = SnowflakeConfig()
TABLE_CONFIG = TableConfig()
BUSINESS_RULES = BusinessRulesConfig()


# Canonical record fields
REQUIRED_FIELDS: List[str] = ["patient_id", "admission_date"]

CORE_FIELDS: List[str] = [
    "patient_id",
    "admission_date",
    "discharge_date",
    "length_of_stay",
]

DERIVED_FIELDS: List[str] = [
    "next_admission_date",
    "days_to_readmission",
    "readmitted_within_30_days",
]

ENRICHED_COLUMNS: List[str] = CORE_FIELDS + DERIVED_FIELDS

DATE_FIELDS: List[str] = ["admission_date", "discharge_date"]


# Column name mappings from the crawled admissions table / CSV export
ADMISSION_COLUMN_MAP: Dict[str, str] = {
    "patient_id": "patient_id",
    "admission_date": "admission_date",
    "discharge_date": "discharge_date",
    "length_of_stay": "length_of_stay",
    "los": "length_of_stay",
    "age": "age",
    "gender": "gender",
    "region": "region",
    "diagnosis": "diagnosis",
    "primary_diagnosis": "diagnosis",
    "severity_level": "severity_level",
    "severity": "severity_level",
    "procedures": "procedures",
    "admission_type": "admission_type",
}
