# src/runtrace/engine/__init__.py
"""Pipeline engine: runs fetch, trace, log correlation and export for one run."""

from runtrace.engine.orchestrator import Orchestrator

__all__ = ["Orchestrator"]
