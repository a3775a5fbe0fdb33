"""
Shared fixtures for all tests.

factory-boy factories live here so every test module can import them.
"""
from datetime import date, timedelta

import factory
import pandas as pd
import pytest

from HRA.models import AdmissionRecord


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class AdmissionRecordFactory(factory.Factory):
    class Meta:
        model = AdmissionRecord

    patient_id = factory.Sequence(lambda n: f'P{n:04d}')
    admission_date = date(2020, 1, 1)
    discharge_date = factory.LazyAttribute(
        lambda o: o.admission_date + timedelta(days=4) if o.admission_date else None
    )
    length_of_stay = None
    attributes = factory.LazyFunction(
        lambda: {'diagnosis': 'Pneumonia', 'severity_level': 'Moderate', 'region': 'North'}
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def raw_admissions_df():
    """Admissions as exported by the crawler: day-month-year text dates."""
    return pd.DataFrame({
        'Patient_ID': ['P1', 'P1', 'P2', 'P2', ' ', 'P3'],
        'Admission_Date': ['01-01-2020', '30-01-2020', '20-01-2020', '10-03-2020', '05-02-2020', '15-02-2020'],
        'Discharge_Date': ['05-01-2020', '02-02-2020', '01-02-2020', '12-03-2020', '07-02-2020', ''],
        'Length_of_Stay': ['4', '3', '12', '2', '2', None],
        'Diagnosis': ['Heart Failure', 'Heart Failure', 'COPD', 'COPD', 'Sepsis', 'Pneumonia'],
        'Severity': ['High', 'Moderate', 'Low', 'Low', 'High', 'Moderate'],
        'Region': ['North', 'North', 'South', 'South', 'East', 'East'],
    })


@pytest.fixture
def enriched_df():
    """Hand-built enriched frame for the reporting views."""
    return pd.DataFrame({
        'patient_id': ['P1', 'P1', 'P2', 'P2', 'P3', 'P3'],
        'region': ['North', 'North', 'South', 'South', 'South', 'South'],
        'severity_level': ['High', 'Low', 'High', 'Low', 'High', 'Moderate'],
        'length_of_stay': pd.array([4, 3, 5, 2, 6, 8], dtype='Int64'),
        'days_to_readmission': pd.array([25, None, 38, None, 10, None], dtype='Int64'),
        'readmitted_within_30_days': [True, False, False, False, True, False],
    })
