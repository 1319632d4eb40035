from .document_loader import DocumentLoader, document_loader, format_json_path
from .validator import (
    BaseValidator,
    SchemaIssue,
    ValidationResult,
    ValidatorFactory,
    validate,
    validate_document,
)
