# tests/test_schema_registry.py
"""Tests for the versioned schema registry."""

import json

import pytest

from os_curation_tool.exceptions import FormatVersionError, InvalidSchemaError, SchemaNotFoundError
from os_curation_tool.models import DocumentKind, SchemaRegistry, schema_registry
from os_curation_tool.utils.format_version import SemanticVersion


@pytest.fixture
def custom_schema_dir(tmp_path):
    """Registry directory with several template versions and one config schema."""
    schema = {"$schema": "https://json-schema.org/draft/2020-12/schema", "type": "object"}
    for version in ("1.0.0", "1.0.2", "1.2.0", "1.3.1", "2.0.0"):
        (tmp_path / version).mkdir()
        (tmp_path / version / "image_template.json").write_text(json.dumps({**schema, "title": version}))
    (tmp_path / "1.0.0" / "global_config.json").write_text(json.dumps(schema))
    (tmp_path / "not-a-version").mkdir()
    (tmp_path / "README").write_text("ignored")
    return tmp_path


class TestBundledRegistry:
    def test_every_kind_has_a_schema(self):
        for kind in DocumentKind:
            assert schema_registry.versions(kind)

    def test_template_versions(self):
        assert schema_registry.versions(DocumentKind.IMAGE_TEMPLATE) == (
            SemanticVersion(1, 0, 0),
            SemanticVersion(1, 1, 0),
        )

    def test_missing_version_selects_newest(self):
        schema = schema_registry.schema_for(DocumentKind.IMAGE_TEMPLATE)
        assert "1.1.0" in schema["$id"]

    def test_older_version_keeps_older_schema(self):
        schema = schema_registry.schema_for(DocumentKind.IMAGE_TEMPLATE, "1.0.0")
        assert "1.0.0" in schema["$id"]
        assert schema["properties"]["target"]["properties"]["imageType"]["enum"] == ["raw", "iso"]

    def test_schemas_are_distinct_per_kind(self):
        legacy = schema_registry.schema_for(DocumentKind.COMPOSER_LEGACY)
        template = schema_registry.schema_for(DocumentKind.IMAGE_TEMPLATE)
        assert legacy["required"] != template["required"]

    def test_schema_mapping_is_read_only(self):
        with pytest.raises(TypeError):
            schema_registry._schemas[DocumentKind.IMAGE_TEMPLATE] = {}


class TestVersionResolution:
    def test_exact_version(self, custom_schema_dir):
        registry = SchemaRegistry(custom_schema_dir)
        assert registry.resolve_version(DocumentKind.IMAGE_TEMPLATE, "1.0.2") == SemanticVersion(1, 0, 2)

    def test_largest_patch_in_same_minor(self, custom_schema_dir):
        registry = SchemaRegistry(custom_schema_dir)
        assert registry.resolve_version(DocumentKind.IMAGE_TEMPLATE, "1.0.1") == SemanticVersion(1, 0, 2)

    def test_closest_larger_minor(self, custom_schema_dir):
        registry = SchemaRegistry(custom_schema_dir)
        assert registry.resolve_version(DocumentKind.IMAGE_TEMPLATE, "1.1.0") == SemanticVersion(1, 2, 0)

    def test_newer_minor_falls_back_to_largest(self, custom_schema_dir):
        registry = SchemaRegistry(custom_schema_dir)
        assert registry.resolve_version(DocumentKind.IMAGE_TEMPLATE, "1.9.0") == SemanticVersion(1, 3, 1)

    def test_major_must_match(self, custom_schema_dir):
        registry = SchemaRegistry(custom_schema_dir)
        assert registry.resolve_version(DocumentKind.IMAGE_TEMPLATE, "2.5.0") == SemanticVersion(2, 0, 0)
        with pytest.raises(FormatVersionError, match="Incompatible"):
            registry.resolve_version(DocumentKind.IMAGE_TEMPLATE, "3.0.0")

    def test_no_version_uses_newest_overall(self, custom_schema_dir):
        registry = SchemaRegistry(custom_schema_dir)
        assert registry.resolve_version(DocumentKind.IMAGE_TEMPLATE) == SemanticVersion(2, 0, 0)

    def test_kind_without_schema(self, custom_schema_dir):
        registry = SchemaRegistry(custom_schema_dir)
        with pytest.raises(SchemaNotFoundError):
            registry.schema_for(DocumentKind.COMPOSER_LEGACY)

    def test_validator_for_returns_compiled_validator(self, custom_schema_dir):
        registry = SchemaRegistry(custom_schema_dir)
        version, validator = registry.validator_for(DocumentKind.GLOBAL_CONFIG)
        assert version == SemanticVersion(1, 0, 0)
        assert validator.is_valid({})
        assert not validator.is_valid([])

    def test_invalid_schema_file_is_rejected(self, tmp_path):
        (tmp_path / "1.0.0").mkdir()
        (tmp_path / "1.0.0" / "image_template.json").write_text(json.dumps({"type": 12}))
        with pytest.raises(InvalidSchemaError, match="not a valid JSON Schema") as exc_info:
            SchemaRegistry(tmp_path)
        assert not isinstance(exc_info.value, SchemaNotFoundError)
        assert exc_info.value.path.endswith("image_template.json")

    def test_schema_file_with_broken_json_is_rejected(self, tmp_path):
        (tmp_path / "1.0.0").mkdir()
        (tmp_path / "1.0.0" / "global_config.json").write_text("{\"type\": ")
        with pytest.raises(InvalidSchemaError, match="Invalid JSON"):
            SchemaRegistry(tmp_path)
