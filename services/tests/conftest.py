"""
Top-level test configuration for Lemma.
"""

import os

# Ensure test-friendly defaults
os.environ.setdefault("LEMMA_JSON_LOGS", "false")
os.environ.setdefault("LEMMA_LOG_LEVEL", "DEBUG")
os.environ.setdefault("LEMMA_CONFIG_FILE", "/nonexistent/lemma-config.yaml")
