"""
Unit tests for record sources, sinks and normalization.

Snowflake pieces run against MagicMock sessions; nothing touches the network.
"""
from datetime import date
from unittest.mock import MagicMock

import pandas as pd
import pytest

from HRA.data_sources import (
    CsvAdmissionSource,
    CsvSink,
    SnowflakeAdmissionSource,
    SnowflakeSink,
    export_to_snowflake,
    frame_from_records,
    frame_from_rejections,
    get_snowflake_session,
    normalize_admissions,
    records_from_frame,
)
from HRA.exceptions import SourceError
from HRA.readmission import calculate_readmissions
from tests.conftest import AdmissionRecordFactory


class TestNormalizeAdmissions:

    def test_columns_are_mapped_to_canonical_names(self, raw_admissions_df):
        out = normalize_admissions(raw_admissions_df)

        for column in ('patient_id', 'admission_date', 'discharge_date',
                       'length_of_stay', 'diagnosis', 'severity_level', 'region'):
            assert column in out.columns

    def test_day_month_year_dates(self, raw_admissions_df):
        out = normalize_admissions(raw_admissions_df)

        assert out.loc[0, 'admission_date'] == date(2020, 1, 1)
        assert out.loc[0, 'discharge_date'] == date(2020, 1, 5)
        assert out.loc[1, 'admission_date'] == date(2020, 1, 30)

    def test_blank_values_become_none(self, raw_admissions_df):
        out = normalize_admissions(raw_admissions_df)

        assert out.loc[4, 'patient_id'] is None
        assert out.loc[5, 'discharge_date'] is None

    def test_length_of_stay_is_nullable_int(self, raw_admissions_df):
        out = normalize_admissions(raw_admissions_df)

        assert str(out['length_of_stay'].dtype) == 'Int64'
        assert out.loc[2, 'length_of_stay'] == 12
        assert pd.isna(out.loc[5, 'length_of_stay'])

    def test_off_format_dates_fall_back_to_dateutil(self):
        raw = pd.DataFrame({
            'patient_id': ['P1', 'P1', 'P1'],
            'admission_date': ['2020-01-30', '05/02/2020', 'not a date'],
        })

        out = normalize_admissions(raw)

        assert out.loc[0, 'admission_date'] == date(2020, 1, 30)
        assert out.loc[1, 'admission_date'] == date(2020, 2, 5)
        assert out.loc[2, 'admission_date'] is None

    def test_iso_dates_keep_day_and_month(self):
        raw = pd.DataFrame({
            'patient_id': ['P1', 'P1'],
            'admission_date': ['2020-01-01', '2020-01-30'],
            'discharge_date': ['2020-01-05', '2020-02-02'],
        })

        out = normalize_admissions(raw)

        assert out['discharge_date'].tolist() == [date(2020, 1, 5), date(2020, 2, 2)]
        first = calculate_readmissions(records_from_frame(out)).enriched[0]
        assert first.days_to_readmission == 25
        assert first.readmitted_within_30_days is True

    def test_alias_column_coalesces_into_canonical(self):
        raw = pd.DataFrame({
            'patient_id': ['P1', 'P2'],
            'admission_date': ['01-01-2020', '02-01-2020'],
            'length_of_stay': ['4', None],
            'LOS': ['9', '6'],
            'Severity': ['High', 'Low'],
            'severity_level': [None, None],
        })

        out = normalize_admissions(raw)

        assert list(out.columns).count('length_of_stay') == 1
        assert 'los' not in out.columns
        assert out['length_of_stay'].tolist() == [4, 6]
        assert out['severity_level'].tolist() == ['High', 'Low']

    def test_missing_optional_columns_are_added(self):
        raw = pd.DataFrame({'patient_id': ['P1'], 'admission_date': ['01-01-2020']})

        out = normalize_admissions(raw)

        assert out.loc[0, 'discharge_date'] is None
        assert pd.isna(out.loc[0, 'length_of_stay'])

    def test_missing_required_column_raises(self):
        raw = pd.DataFrame({'patient_id': ['P1'], 'discharge_date': ['05-01-2020']})

        with pytest.raises(SourceError) as exc_info:
            normalize_admissions(raw)

        assert exc_info.value.code == 'SOURCE_ERROR'
        assert 'admission_date' in exc_info.value.message

    def test_custom_column_map_and_format(self):
        raw = pd.DataFrame({'MRN': ['A7'], 'ADMIT_DT': ['2020/01/02']})

        out = normalize_admissions(
            raw,
            column_map={'mrn': 'patient_id', 'admit_dt': 'admission_date'},
            date_format='%Y/%m/%d'
        )

        assert out.loc[0, 'patient_id'] == 'A7'
        assert out.loc[0, 'admission_date'] == date(2020, 1, 2)


class TestRecordConversion:

    def test_records_from_frame_carries_attributes(self, raw_admissions_df):
        records = records_from_frame(normalize_admissions(raw_admissions_df))

        assert len(records) == len(raw_admissions_df)
        first = records[0]
        assert first.patient_id == 'P1'
        assert first.length_of_stay == 4
        assert first.attributes == {
            'diagnosis': 'Heart Failure', 'severity_level': 'High', 'region': 'North'
        }
        assert records[5].length_of_stay is None

    def test_normalized_frame_feeds_calculator(self, raw_admissions_df):
        records = records_from_frame(normalize_admissions(raw_admissions_df))

        result = calculate_readmissions(records)

        assert len(result.enriched) == 5
        assert len(result.rejected) == 1
        assert result.rejected[0].row == 4
        p1 = [r for r in result.enriched if r.patient_id == 'P1']
        assert p1[0].days_to_readmission == 25
        assert p1[0].readmitted_within_30_days is True

    def test_frame_from_records(self):
        a = AdmissionRecordFactory(patient_id='P1', admission_date=date(2020, 1, 1),
                                   discharge_date=date(2020, 1, 5),
                                   attributes={'region': 'North'})
        b = AdmissionRecordFactory(patient_id='P1', admission_date=date(2020, 1, 30),
                                   attributes={'region': 'North'})

        df = frame_from_records(calculate_readmissions([a, b]).enriched)

        assert list(df.columns) == [
            'patient_id', 'admission_date', 'discharge_date', 'length_of_stay', 'region',
            'next_admission_date', 'days_to_readmission', 'readmitted_within_30_days',
        ]
        assert str(df['days_to_readmission'].dtype) == 'Int64'
        assert df['readmitted_within_30_days'].tolist() == [True, False]
        assert df.loc[0, 'length_of_stay'] == 4

    def test_frame_from_records_empty(self):
        df = frame_from_records([])

        assert df.empty
        assert 'readmitted_within_30_days' in df.columns

    def test_frame_from_rejections(self):
        bad = AdmissionRecordFactory(patient_id=None, attributes={'region': 'East'})

        df = frame_from_rejections(calculate_readmissions([bad]).rejected)

        assert df.loc[0, 'row'] == 0
        assert df.loc[0, 'field'] == 'patient_id'
        assert df.loc[0, 'region'] == 'East'


class TestCsvAdapters:

    def test_source_reads_text_columns(self, tmp_path, raw_admissions_df):
        path = tmp_path / 'admissions.csv'
        raw_admissions_df.to_csv(path, index=False)

        df = CsvAdmissionSource(path).load()

        assert len(df) == len(raw_admissions_df)
        assert df.loc[0, 'Admission_Date'] == '01-01-2020'

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CsvAdmissionSource(tmp_path / 'missing.csv').load()

    def test_sink_writes_file(self, tmp_path):
        path = tmp_path / 'out' / 'enriched.csv'

        CsvSink(path).write(pd.DataFrame({'patient_id': ['P1', 'P2']}))

        assert pd.read_csv(path)['patient_id'].tolist() == ['P1', 'P2']


class TestSnowflakeAdapters:

    def test_source_lowercases_columns(self):
        session = MagicMock()
        session.table.return_value.to_pandas.return_value = pd.DataFrame(
            {'PATIENT_ID': ['P1'], 'ADMISSION_DATE': ['01-01-2020']}
        )

        df = SnowflakeAdmissionSource(session, 'HRA_DB.STAGE.HOSPITAL_ADMISSIONS').load()

        session.table.assert_called_once_with('HRA_DB.STAGE.HOSPITAL_ADMISSIONS')
        assert list(df.columns) == ['patient_id', 'admission_date']

    def test_source_wraps_read_errors(self):
        session = MagicMock()
        session.table.side_effect = RuntimeError('table does not exist')

        with pytest.raises(SourceError) as exc_info:
            SnowflakeAdmissionSource(session, 'NOPE').load()

        assert exc_info.value.detail == {'table': 'NOPE'}

    def test_export_splits_qualified_name(self):
        session = MagicMock()
        df = pd.DataFrame({'A': [1]})

        export_to_snowflake(session, df, 'HRA_DB.BASE.FLAGS', mode='append')

        _, kwargs = session.write_pandas.call_args
        assert session.write_pandas.call_args.args[1] == 'FLAGS'
        assert kwargs['database'] == 'HRA_DB'
        assert kwargs['schema'] == 'BASE'
        assert kwargs['overwrite'] is False

    def test_export_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            export_to_snowflake(MagicMock(), pd.DataFrame(), 'T', mode='merge')

    def test_sink_uppercases_columns(self):
        session = MagicMock()

        SnowflakeSink(session, 'FLAGS').write(pd.DataFrame({'patient_id': ['P1']}))

        written = session.write_pandas.call_args.args[0]
        assert list(written.columns) == ['PATIENT_ID']

    def test_session_requires_private_key(self, monkeypatch):
        monkeypatch.delenv('MY_SF_PKEY', raising=False)

        with pytest.raises(ValueError, match='MY_SF_PKEY'):
            get_snowflake_session()
