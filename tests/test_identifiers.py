"""
Tests for the generated identifier value objects.
"""

import importlib
from unittest import TestCase

import pytest

from ddd_auto_generator.ast_codegen.identifiers import generate_identifier_code
from ddd_auto_generator.exceptions import CodeGenerationError


class TestGeneratedIdentifiers(TestCase):
    """Test cases for ProductIdentifier (generated string key) and CategoryIdentifier (number key)"""

    @pytest.fixture(autouse=True)
    def _generated(self, generated_service):
        self.ProductIdentifier = importlib.import_module(
            "shop_catalog.product.domain.value_objects.product_identifier"
        ).ProductIdentifier
        self.CategoryIdentifier = importlib.import_module(
            "shop_catalog.category.domain.value_objects.category_identifier"
        ).CategoryIdentifier
        self.ProductDomainException = importlib.import_module(
            "shop_catalog.product.domain.exceptions.product_domain_exception"
        ).ProductDomainException
        self.CategoryDomainException = importlib.import_module(
            "shop_catalog.category.domain.exceptions.category_domain_exception"
        ).CategoryDomainException

    def test_create_strips_string_keys(self):
        identifier = self.ProductIdentifier.create("  sku-1 ")
        assert identifier.value == "sku-1"
        assert identifier.to_string() == "sku-1"

    def test_direct_construction_is_refused(self):
        with self.assertRaises(TypeError):
            self.ProductIdentifier("sku-1")

    def test_missing_string_key(self):
        with self.assertRaises(self.ProductDomainException) as raised:
            self.ProductIdentifier.create(None)
        assert raised.exception.code == "IDENTIFIER_REQUIRED_PRODUCT"
        assert raised.exception.aggregate == "Product"

    def test_blank_or_non_string_key(self):
        for value in ("   ", 42):
            with self.assertRaises(self.ProductDomainException) as raised:
                self.ProductIdentifier.create(value)
            assert raised.exception.code == "IDENTIFIER_EMPTY_PRODUCT"

    def test_generate(self):
        first = self.ProductIdentifier.generate()
        second = self.ProductIdentifier.generate()
        assert len(first.value) == 36
        assert first != second

    def test_equality_and_hashing(self):
        assert self.ProductIdentifier.create("a") == self.ProductIdentifier.from_string("a")
        assert len({self.ProductIdentifier.create("a"), self.ProductIdentifier.create("a")}) == 1
        assert self.CategoryIdentifier.create(1) != 1

    def test_number_key(self):
        assert self.CategoryIdentifier.create(7).value == 7
        assert self.CategoryIdentifier.from_string("7").value == 7
        assert not hasattr(self.CategoryIdentifier, "generate")

    def test_invalid_number_keys(self):
        for value in (-1, True, "7"):
            with self.assertRaises(self.CategoryDomainException) as raised:
                self.CategoryIdentifier.create(value)
            assert raised.exception.code == "IDENTIFIER_INVALID_CATEGORY"
            assert raised.exception.status_code == 400

    def test_unparseable_number_key(self):
        with self.assertRaises(self.CategoryDomainException) as raised:
            self.CategoryIdentifier.from_string("seven")
        assert raised.exception.code == "IDENTIFIER_INVALID_CATEGORY"

    def test_missing_number_key(self):
        with self.assertRaises(self.CategoryDomainException) as raised:
            self.CategoryIdentifier.from_string(None)
        assert raised.exception.code == "IDENTIFIER_REQUIRED_CATEGORY"


def test_no_identifier_for_structured_key(catalog_ctx):
    with pytest.raises(CodeGenerationError) as raised:
        generate_identifier_code(catalog_ctx, "audit_log")
    assert raised.value.context["table"] == "audit_log"


def test_identifier_code_registers_catalog_entries(catalog_ctx):
    code = generate_identifier_code(catalog_ctx, "tag")
    assert "class TagIdentifier(EntityIdentifier[str]):" in code
    assert "def generate" not in code
    assert catalog_ctx.catalog.keys("tag") == ["identifier_empty", "identifier_required"]
