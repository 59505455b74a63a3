"""
Kitchen Compliance Test Suite
=============================

Test organization:
- tests/unit/          - Models, errors, logging and the in-memory repository
- tests/services/      - Hierarchy, catalog, evaluation, runs, cascade and tasks
- tests/property/      - Hypothesis properties for checklists and filtering

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    HYPOTHESIS_PROFILE=ci pytest    # More property examples
"""
