"""
gomod-artifacts — integration tests

Purpose
- Tests that drive a real git binary or the CLI subprocess. No network access.
"""
