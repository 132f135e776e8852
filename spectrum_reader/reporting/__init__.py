"""Reporting utilities for spectrum-reader runs."""

from .artifacts import describe_network, write_manifest
from .metrics import CsvSink, JsonlSink
from .plots import PlotAdapter
from .summary import write_summary

__all__ = ["describe_network", "write_manifest", "CsvSink", "JsonlSink", "PlotAdapter", "write_summary"]
