"""Validation and package resolution for declarative OS image templates."""

__version__ = "0.1.0"

# Schema version written into newly generated documents and manifests.
TEMPLATE_FORMAT_VERSION = "1.1.0"
