#!/usr/bin/env python3
"""
Test suite for the matching pipeline.

All tests can be run with standard Python tools:

    # Run all tests
    python -m pytest tests/ -v

    # Skip tests that touch a database engine
    python -m pytest tests/ -v -m "not db"

    # Using unittest
    python -m unittest discover tests -v

Database tests use in-memory SQLite, so no external services are needed.
The Redis tier is always mocked.
"""
