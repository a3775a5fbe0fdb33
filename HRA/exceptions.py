"""
Exception types for Hospital Readmission Analytics.

All pipeline errors inherit from HRAError and carry:
- message: human readable description
- code:    stable error identifier (MALFORMED_RECORD / SOURCE_ERROR / ...)
- detail:  optional extra context (dict / None)

MalformedRecord is never raised out of the calculator for a batch; it is
collected per record and reported alongside the enriched output.
"""


class HRAError(Exception):
    """Base class for all pipeline errors."""

    code = 'HRA_ERROR'

    def __init__(self, message, code=None, detail=None):
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail
        super().__init__(message)


class MalformedRecord(HRAError):
    """A record is missing a key needed for grouping or ordering."""

    code = 'MALFORMED_RECORD'

    def __init__(self, field, record=None, message=None):
        self.field = field
        self.record = record
        super().__init__(
            message or f"Admission record is missing required field '{field}'",
            detail={'field': field},
        )


class SourceError(HRAError):
    """A record source could not be read or lacks required columns."""

    code = 'SOURCE_ERROR'
