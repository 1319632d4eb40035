"""Versioned JSON Schemas for curation documents.

Layout: ``<MAJOR.MINOR.PATCH>/<document kind>.json``. Files are data only;
loading and version selection live in ``models.schema_registry`` so that
this package stays independent of the validation implementation.
"""

from pathlib import Path

SCHEMA_DIR = Path(__file__).resolve().parent
