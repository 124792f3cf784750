#!/usr/bin/env python
"""
Test runner script for running every app's test suite
Usage: python fenceledger/run_tests.py (pytest works too, see pyproject.toml)
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'fenceledger.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests([
        'fenceledger.core',
        'fenceledger.inventory',
        'fenceledger.parties',
        'fenceledger.ledger',
        'fenceledger.reports',
    ])
    sys.exit(bool(failures))
