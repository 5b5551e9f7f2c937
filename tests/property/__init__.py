# tests/property/__init__.py
"""Property-based tests for runtrace.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- test_pagination_properties: job enumeration completeness and bounds
- test_log_properties: log parsing order and correlation envelopes
"""
