"""
runtrace: CI workflow run telemetry export.

Converts the execution record of a CI workflow run into a distributed trace
and a correlated structured log stream, and ships both to external backends.
"""

__version__ = "0.1.0"
