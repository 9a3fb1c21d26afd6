"""Subprocess execution with redacted output."""

from autobumper.execution.runner import ProcessResult, ProcessRunner, call

__all__ = ["ProcessResult", "ProcessRunner", "call"]
