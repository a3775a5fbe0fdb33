"""
Main pipeline orchestration for Hospital Readmission Analytics.
"""
import argparse
import logging
from typing import Dict, List, Optional

from .config import BUSINESS_RULES, TABLE_CONFIG
from .utils import setup_logging, Timer
from .models import ReadmissionResult
from .readmission import calculate_readmissions
from .reporting import readmission_kpis, readmission_rate_by
from .data_sources import (
    get_snowflake_session, normalize_admissions, records_from_frame,
    frame_from_records, frame_from_rejections,
    CsvAdmissionSource, SnowflakeAdmissionSource, CsvSink, SnowflakeSink
)

logger = logging.getLogger(__name__)


def run_readmission_pipeline(
    source,
    sink=None,
    rejects_sink=None,
    threshold_days: Optional[int] = None,
    max_workers: Optional[int] = None,
    column_map: Optional[Dict[str, str]] = None,
    date_format: Optional[str] = None,
    log_level: int = logging.INFO
) -> ReadmissionResult:
    """
    Run the readmission pipeline: load, normalize, enrich, write.

    Args:
        source: Object with load() -> pandas DataFrame of raw admissions
        sink: Optional object with write(df) for the enriched frame
        rejects_sink: Optional object with write(df) for rejected records
        threshold_days: Readmission window (default: BUSINESS_RULES)
        max_workers: Threads for patient partitions (default: BUSINESS_RULES)
        column_map: Source column -> canonical name overrides
        date_format: Source date format override
        log_level: Logging level (default: INFO)

    Returns:
        ReadmissionResult with enriched and rejected records
    """
    setup_logging(level=log_level)
    logger.info("="*60)
    logger.info("Starting Hospital Readmission Pipeline")
    logger.info(f"Readmission window: {threshold_days or BUSINESS_RULES.readmit_threshold_days} days")
    logger.info("="*60)

    try:
        with Timer("Complete Pipeline Execution"):
            # Step 1: Load raw admissions
            with Timer("Admissions Load"):
                raw_df = source.load()

            # Step 2: Normalize columns and dates
            with Timer("Admissions Normalization"):
                admissions_df = normalize_admissions(raw_df, column_map, date_format)
                records = records_from_frame(admissions_df)

            # Step 3: Readmission window calculation
            with Timer("Readmission Calculation"):
                result = calculate_readmissions(
                    records,
                    threshold_days=threshold_days,
                    max_workers=max_workers
                )

            # Step 4: Write enriched admissions
            if sink is not None:
                with Timer("Enriched Export"):
                    sink.write(frame_from_records(result.enriched))

            # Step 5: Report rejected records
            if result.rejected:
                logger.warning(f"{len(result.rejected)} admission records rejected")
                if rejects_sink is not None:
                    with Timer("Rejected Export"):
                        rejects_sink.write(frame_from_rejections(result.rejected))

            logger.info("="*60)
            logger.info("Hospital Readmission Pipeline Completed Successfully")
            logger.info(
                f"Admissions: {result.total} | Enriched: {len(result.enriched)} | "
                f"Readmissions: {result.readmission_count} | Rejected: {len(result.rejected)}"
            )
            logger.info("="*60)

            return result

    except Exception as e:
        logger.error("="*60)
        logger.error(f"Pipeline failed with error: {str(e)}")
        logger.error("="*60)
        raise


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Hospital Readmission Pipeline - 30-day readmission flags for admission records'
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--input', help='Admissions CSV file')
    source.add_argument(
        '--snowflake-table',
        nargs='?',
        const=TABLE_CONFIG.admissions_table(),
        help='Admissions table in Snowflake (default: configured admissions table)'
    )

    output = parser.add_mutually_exclusive_group()
    output.add_argument('--output', help='Write enriched admissions to this CSV file')
    output.add_argument(
        '--snowflake-output',
        nargs='?',
        const=TABLE_CONFIG.enriched_output_table(),
        help='Write enriched admissions to this Snowflake table'
    )

    rejects = parser.add_mutually_exclusive_group()
    rejects.add_argument('--rejects', help='Write rejected records to this CSV file')
    rejects.add_argument(
        '--snowflake-rejects',
        nargs='?',
        const=TABLE_CONFIG.rejects_output_table(),
        help='Write rejected records to this Snowflake table (default: configured rejects table)'
    )

    parser.add_argument('--threshold-days', type=int, default=None, help='Readmission window in days')
    parser.add_argument('--workers', type=int, default=None, help='Threads for patient partitions')
    parser.add_argument('--date-format', default=None, help='Source date format (default: %%d-%%m-%%Y)')
    parser.add_argument('--summary-by', default=None, help='Log readmission rate by this column')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for running pipeline from command line."""
    args = parse_args(argv)

    session = None
    if args.snowflake_table or args.snowflake_output or args.snowflake_rejects:
        session = get_snowflake_session()

    if args.input:
        source = CsvAdmissionSource(args.input)
    else:
        source = SnowflakeAdmissionSource(session, args.snowflake_table)

    sink = None
    if args.output:
        sink = CsvSink(args.output)
    elif args.snowflake_output:
        sink = SnowflakeSink(session, args.snowflake_output)

    rejects_sink = None
    if args.rejects:
        rejects_sink = CsvSink(args.rejects)
    elif args.snowflake_rejects:
        rejects_sink = SnowflakeSink(session, args.snowflake_rejects)

    try:
        result = run_readmission_pipeline(
            source,
            sink=sink,
            rejects_sink=rejects_sink,
            threshold_days=args.threshold_days,
            max_workers=args.workers,
            date_format=args.date_format,
            log_level=getattr(logging, args.log_level)
        )

        enriched_df = frame_from_records(result.enriched)
        kpis = readmission_kpis(enriched_df)
        logger.info(f"Readmission rate: {kpis['readmission_rate']:.2%} "
                    f"({kpis['readmissions']} / {kpis['distinct_patients']} patients)")

        if args.summary_by:
            summary = readmission_rate_by(enriched_df, args.summary_by)
            logger.info(f"Readmission rate by {args.summary_by}:\n{summary.to_string(index=False)}")
    finally:
        if session is not None:
            session.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
