"""
Test suite for schemasync.

This package contains tests for all schemasync components:
- Unit tests for the difference algorithm, reconciler and diagnostics
- Repository tests against temporary folders and mocked database pools
- CLI tests through click's test runner
"""
