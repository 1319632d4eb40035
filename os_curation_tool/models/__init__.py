from .document import (
    DocumentKind,
    GlobalConfig,
    ImageTemplate,
    KernelConfig,
    RepositoryConfig,
    SystemConfigBlock,
    detect_document_kind,
)
from .package import Ecosystem, PackageInfo, ParsedIndex, ResolutionResult
from .schema_registry import SchemaRegistry, schema_registry
