"""
Tests for the generated persistence mappings.
"""

import importlib
from unittest import TestCase

import pytest

from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.ast_codegen.persistence import generate_mapping_code, join_name
from ddd_auto_generator.normalizer import normalize_schema


STORED_PRODUCT = {
    "code": "sku-1",
    "name": "Widget",
    "enabled": True,
    "status": "published",
    "isDefault": False,
    "category": {"id": 3, "name": "Tools"},
    "tenant": "acme",
    "_joins": {"tag_tags": ["red", "blue"], "tag_labels": ["sale"]},
}


class TestProductMapping(TestCase):
    """Test cases for ProductMapping (managed joins and an embedded value)"""

    @pytest.fixture(autouse=True)
    def _generated(self, generated_service):
        module = importlib.import_module("shop_catalog.product.infrastructure.persistence.product_mapping")
        self.ProductMapping = module.ProductMapping
        self.ProductStatusEnum = importlib.import_module(
            "shop_catalog.product.domain.entities.product_entity"
        ).ProductStatusEnum
        self.ProductDomainException = importlib.import_module(
            "shop_catalog.product.domain.exceptions.product_domain_exception"
        ).ProductDomainException
        self.Product = importlib.import_module(
            "shop_catalog.product.domain.aggregates.product_aggregate"
        ).Product

    def test_table_metadata(self):
        assert self.ProductMapping.table_name == "product"
        assert self.ProductMapping.primary_key == "code"

    def test_to_record_uses_column_names(self):
        props = {
            "code": "sku-1",
            "name": "Widget",
            "enabled": True,
            "status": self.ProductStatusEnum.PUBLISHED,
            "is_default": False,
            "tags": [{"code": "red"}, {"code": "blue"}],
            "labels": {"sale": {"code": "sale"}},
            "category": {"id": 3, "name": "Tools"},
            "tenant": "acme",
        }
        record = self.ProductMapping.to_record(props)
        assert record == STORED_PRODUCT
        assert "tags" not in record

    def test_embedded_value_is_copied(self):
        category = {"id": 3, "name": "Tools"}
        record = self.ProductMapping.to_record({"code": "sku-1", "category": category})
        record["category"]["name"] = "changed"
        assert category["name"] == "Tools"

    def test_from_record_without_resolver(self):
        props = self.ProductMapping.from_record(dict(STORED_PRODUCT))
        assert props["is_default"] is False
        assert props["tags"] == [{"code": "red"}, {"code": "blue"}]
        assert props["labels"] == {"sale": {"code": "sale"}}
        assert props["tenant"] == "acme"

    def test_from_record_resolves_joined_items(self):
        stored_tags = {"red": {"code": "red", "label": "Red"}}
        calls = []

        def resolve(table, key_field, key):
            calls.append((table, key_field, key))
            return stored_tags.get(key)

        props = self.ProductMapping.from_record(dict(STORED_PRODUCT), resolve)
        assert props["tags"] == [{"code": "red", "label": "Red"}, {"code": "blue"}]
        assert ("tag", "code", "red") in calls

    def test_missing_record(self):
        with self.assertRaises(self.ProductDomainException) as raised:
            self.ProductMapping.from_record(None)
        assert raised.exception.code == "NOT_FOUND_PRODUCT"
        assert raised.exception.status_code == 404

    def test_aggregate_round_trip(self):
        product = self.Product.from_entity(self.ProductMapping.from_record(dict(STORED_PRODUCT)))
        assert product.status is self.ProductStatusEnum.PUBLISHED
        assert product.tags.keys() == ["red", "blue"]
        record = self.ProductMapping.to_record(product.to_props())
        assert record["_joins"] == STORED_PRODUCT["_joins"]
        assert record["tenant"] is None


class TestInlineMapping(TestCase):
    """Test cases for collections stored inline when a join is not possible"""

    @pytest.fixture(autouse=True)
    def _schema(self, raw_schema, raw_parameters):
        raw_parameters["tables"]["tag"] = {"store": {"read": "redis", "write": "redis", "list": "redis"}}
        schema = normalize_schema("shop_catalog", raw_schema, raw_parameters)
        self.ctx = GenerationContext.from_schema(schema)

    def test_inline_list_keeps_keys(self):
        code = generate_mapping_code(self.ctx, "product")
        assert "record['tags'] = [item['code'] for item in props.get('tags') or []]" in code
        assert "joins['tag_tags']" not in code

    def test_inline_map_keeps_keyed_items(self):
        code = generate_mapping_code(self.ctx, "product")
        assert "record['labels'] = {" in code
        assert "(props.get('labels') or {}).items()" in code

    def test_join_names(self):
        rels = {rel.field_name: rel for rel in self.ctx.managed_relationships("product")}
        assert join_name(rels["tags"]) == "tag_tags"
        assert join_name(rels["labels"]) == "tag_labels"
