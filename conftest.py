"""
Pytest configuration for Django tests with SQLite.

Uses the in-memory File Search backend - no Gemini credentials required.
"""

import os

# Set test settings module before importing Django
os.environ["DJANGO_SETTINGS_MODULE"] = "ragskin.settings_test"
