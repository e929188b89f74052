"""Exceptions raised by the report pipeline.

Every failure is fatal to a run: nothing here is caught and retried inside
the services. The CLI catches `CovidReportError`, logs it and exits non-zero.
"""
from __future__ import annotations


class CovidReportError(Exception):
    """Base class for all pipeline failures."""


class IngestionError(CovidReportError):
    """A source could not be fetched, or its columns do not match the expected schema."""


class ParseError(CovidReportError, ValueError):
    """A date header or population value could not be parsed."""


class JoinAmbiguityError(CovidReportError):
    """A join key matched more than one row on one side of a join."""


class DivisionHazardError(CovidReportError, ZeroDivisionError):
    """A per-million rate was requested for a zero population."""


class InsufficientDataError(CovidReportError):
    """Too few rows to fit the rate regression."""
