"""Reporting sinks."""

from provcheck.report.console import ConsoleSink
from provcheck.report.writer import build_report, write_verification_report

__all__ = ["ConsoleSink", "build_report", "write_verification_report"]
