"""
Tests for schema normalization and entity configuration defaults.
"""

from unittest import TestCase

import pytest

from ddd_auto_generator.domain.models import (
    Cardinality,
    CollectionShape,
    IdentifierGeneration,
    ScalarType,
    StoreBackend,
)
from ddd_auto_generator.exceptions import ConfigurationError, SchemaLoadError
from ddd_auto_generator.normalizer import (
    base_datatype,
    fill_entity_defaults,
    normalize_schema,
    parse_enum_literals,
    resolve_scalar_type,
)


class TestDatatypes(TestCase):
    """Test cases for datatype resolution"""

    def test_base_datatype_drops_length(self):
        assert base_datatype("varchar(64)") == "VARCHAR"
        assert base_datatype(None) == ""

    def test_scalar_type_groups(self):
        assert resolve_scalar_type("varchar(64)") is ScalarType.STRING
        assert resolve_scalar_type("BIGINT") is ScalarType.NUMBER
        assert resolve_scalar_type("timestamp") is ScalarType.DATE
        assert resolve_scalar_type("bool") is ScalarType.BOOLEAN
        assert resolve_scalar_type("JSONB") is ScalarType.STRUCTURED
        assert resolve_scalar_type("blob") is ScalarType.ANY

    def test_enum_literals(self):
        assert parse_enum_literals("'a', b ,a") == ("a", "b")
        assert parse_enum_literals(["x", "y"]) == ("x", "y")
        assert parse_enum_literals(None) == ()


class TestEntityDefaults(TestCase):
    """Test cases for fill_entity_defaults"""

    def test_fills_missing_keys_only(self):
        params = fill_entity_defaults({"redis": {"ttl": 60}}, "auditLog", "shop_catalog", ["id"])
        assert params["redis"]["ttl"] == 60
        assert params["redis"]["category"] == "lookups:core.audit-log.v1"
        assert params["eventstream"]["stream"] == "core.audit-log.v1"
        assert params["eventstream"]["boundedContext"] == "shop_catalog"
        assert params["cancel"] == {"create": False, "update": False, "delete": False, "batch": False, "get": False}

    def test_stale_columns_removed_and_new_columns_added(self):
        params = fill_entity_defaults({"cols": {"gone": {"x": 1}}}, "tag", "shop_catalog", ["code", "label"])
        assert params["cols"] == {"code": {}, "label": {}}

    def test_input_is_not_mutated(self):
        raw = {"cols": {"gone": {}}}
        fill_entity_defaults(raw, "tag", "shop_catalog", ["code"])
        assert raw == {"cols": {"gone": {}}}


class TestNormalizeSchema(TestCase):
    """Test cases for normalize_schema on the catalog schema"""

    @pytest.fixture(autouse=True)
    def _schema(self, catalog_schema, raw_schema, raw_parameters):
        self.schema = catalog_schema
        self.raw_schema = raw_schema
        self.raw_parameters = raw_parameters

    def test_service(self):
        assert self.schema.service.module == "shop_catalog"
        assert self.schema.service.name == "Shop Catalog"
        assert self.schema.service.has_sql
        assert self.schema.service.has_redis
        assert self.schema.service.has_event_stream

    def test_generated_identifier_marker(self):
        code = self.schema.get_table("product").get_column("code")
        assert code.identifier_generation is IdentifierGeneration.RANDOM
        assert code.scalar_type is ScalarType.STRING
        assert code.length == "36"
        assert code.default is None

    def test_empty_structure_marker(self):
        labels = self.schema.get_table("product").get_column("labels")
        assert labels.collection_shape is CollectionShape.MAP
        assert labels.default is None

    def test_enum_column(self):
        status = self.schema.get_table("product").get_column("status")
        assert status.enum_values == ("draft", "published", "archived")
        assert status.enum_type_name == "ProductStatusEnum"

    def test_nullability(self):
        product = self.schema.get_table("product")
        assert not product.get_column("code").nullable
        assert not product.get_column("name").nullable
        assert product.get_column("enabled").nullable
        assert product.get_column("isDefault").field_name == "is_default"

    def test_indexes_resolve_column_ids(self):
        index = self.schema.get_table("product").indexes[0]
        assert index.name == "idx_product_name"
        assert index.columns == ("name",)
        assert index.unique

    def test_relations_use_names(self):
        by_name = {relation.name: relation for relation in self.schema.relations}
        tags = by_name["product_tags"]
        assert (tags.parent_table, tags.parent_column, tags.child_table, tags.child_column) == (
            "tag", "code", "product", "tags"
        )
        assert tags.is_many_to_many
        category = by_name["product_category"]
        assert category.parent_cardinality is Cardinality.ONE
        assert category.child_column == "category"

    def test_entity_configs_for_every_table(self):
        assert set(self.schema.entity_configs) == {"tag", "category", "product", "audit_log"}
        config = self.schema.config_for("product")
        assert StoreBackend.SQL in config.store.read
        assert config.eventstream.bounded_context == "shop_catalog"
        assert [api.method_name for api in config.custom_apis] == ["publish_channel"]
        assert config.custom_apis[0].params == (("channel", "string"),)

    def test_stale_table_configuration_is_dropped(self):
        self.raw_parameters["tables"]["ghost"] = {"cancel": {"create": True}}
        schema = normalize_schema("shop_catalog", self.raw_schema, self.raw_parameters)
        assert "ghost" not in schema.entity_configs

    def test_invalid_cardinality_drops_relation(self):
        self.raw_schema["relations"]["r_tags"]["c_p"] = "several"
        schema = normalize_schema("shop_catalog", self.raw_schema, self.raw_parameters)
        assert "product_tags" not in {relation.name for relation in schema.relations}

    def test_malformed_schema_raises(self):
        with self.assertRaises(SchemaLoadError):
            normalize_schema("broken", {"tables": {}})

    def test_unknown_store_backend_raises(self):
        self.raw_parameters["tables"]["tag"] = {"store": {"read": "mongo"}}
        with self.assertRaises(ConfigurationError) as raised:
            normalize_schema("shop_catalog", self.raw_schema, self.raw_parameters)
        assert "tag" in str(raised.exception)
