"""
Tests for the per-entity error catalog.
"""

from unittest import TestCase

from ddd_auto_generator.domain.error_catalog import ErrorCatalog, ErrorDefinition


class TestErrorCatalog(TestCase):
    """Test cases for ErrorCatalog"""

    def setUp(self):
        self.catalog = ErrorCatalog()

    def test_register_derives_code_and_exception(self):
        key = self.catalog.register("product", "duplicate_tag", "Duplicate tag", "Tag already present", 409)
        assert key == "duplicate_tag"
        entry = self.catalog.get("product", "duplicate_tag")
        assert entry.code == "DUPLICATE_TAG_PRODUCT"
        assert entry.exception == "ProductDomainException"
        assert entry.status_code == 409
        assert entry.domain is True

    def test_register_defaults_to_bad_request(self):
        self.catalog.register("audit_log", "invalid_message", "Invalid", "Invalid message")
        entry = self.catalog.get("audit_log", "invalid_message")
        assert entry.status_code == 400
        assert entry.code == "INVALID_MESSAGE_AUDIT_LOG"

    def test_register_is_idempotent(self):
        self.catalog.register("product", "not_found", "Not found", "Missing", 404)
        self.catalog.register("product", "not_found", "Not found", "Missing", 404)
        assert self.catalog.keys("product") == ["not_found"]

    def test_required_string_field(self):
        key = self.catalog.register_required("product", "name", "string")
        assert key == "name_required"
        entry = self.catalog.get("product", key)
        assert entry.code == "INVALID_NAME_VALUE_PRODUCT"
        assert entry.message == "Name is required and cannot be empty"
        assert "non-empty string" in entry.description

    def test_required_other_fields(self):
        key = self.catalog.register_required("category", "isDefault", "boolean")
        assert key == "is_default_required"
        entry = self.catalog.get("category", key)
        assert entry.message == "Is default is required"
        assert entry.code == "INVALID_IS_DEFAULT_VALUE_CATEGORY"

    def test_entries_are_sorted(self):
        self.catalog.register("product", "zeta", "z", "z")
        self.catalog.register("product", "alpha", "a", "a")
        self.catalog.register("tag", "beta", "b", "b")
        assert [entry.key for entry in self.catalog.entries("product")] == ["alpha", "zeta"]
        assert self.catalog.entities() == ["product", "tag"]
        assert self.catalog.entries("missing") == []

    def test_verify_matching_references(self):
        self.catalog.register("tag", "not_found", "Not found", "Missing", 404)
        result = self.catalog.verify("tag", ["not_found", "not_found"])
        assert result.is_valid
        assert result.errors == []

    def test_verify_reports_dangling_and_orphans(self):
        self.catalog.register("tag", "not_found", "Not found", "Missing", 404)
        result = self.catalog.verify("tag", ["code_required"])
        assert not result.is_valid
        assert result.errors == [
            "Dangling error reference 'code_required' in tag",
            "Orphan error catalog entry 'not_found' in tag",
        ]

    def test_to_dict(self):
        self.catalog.register("tag", "not_found", "Not found", "Missing", 404)
        data = self.catalog.to_dict()
        assert data["tag"]["not_found"] == ErrorDefinition(
            key="not_found",
            message="Not found",
            description="Missing",
            code="NOT_FOUND_TAG",
            exception="TagDomainException",
            status_code=404,
        ).to_dict()
