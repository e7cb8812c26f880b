"""
Tests for relationship resolution.
"""

from unittest import TestCase

import pytest

from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.domain.models import PersistenceMode, RepresentationMode
from ddd_auto_generator.domain.relationships import RelationshipResolver, persistence_mode
from ddd_auto_generator.normalizer import normalize_schema


class TestPersistenceMode(TestCase):
    def test_collections_join_only_when_valid(self):
        assert persistence_mode(RepresentationMode.LIST, True) is PersistenceMode.JOIN
        assert persistence_mode(RepresentationMode.MAP, False) is PersistenceMode.INLINE

    def test_single_values(self):
        assert persistence_mode(RepresentationMode.EMBEDDED, True) is PersistenceMode.EMBEDDED
        assert persistence_mode(RepresentationMode.REFERENCE, True) is PersistenceMode.COLUMN


class TestRelationshipResolver(TestCase):
    """Test cases for RelationshipResolver on the catalog schema"""

    @pytest.fixture(autouse=True)
    def _schema(self, catalog_schema, raw_schema, raw_parameters):
        self.resolver = RelationshipResolver(catalog_schema)
        self.raw_schema = raw_schema
        self.raw_parameters = raw_parameters

    def _resolver(self):
        return RelationshipResolver(normalize_schema("shop_catalog", self.raw_schema, self.raw_parameters))

    def _owned(self, resolver, table_name):
        return {rel.field_name: rel for rel in resolver.owned_relationships(table_name)}

    def test_representation_modes(self):
        owned = self._owned(self.resolver, "product")
        assert owned["tags"].representation_mode is RepresentationMode.LIST
        assert owned["labels"].representation_mode is RepresentationMode.MAP
        assert owned["category"].representation_mode is RepresentationMode.EMBEDDED

    def test_join_when_both_sides_are_relational(self):
        owned = self._owned(self.resolver, "product")
        assert owned["tags"].join_valid
        assert owned["tags"].persistence_mode is PersistenceMode.JOIN
        assert owned["category"].persistence_mode is PersistenceMode.EMBEDDED

    def test_inline_when_one_side_is_not_relational(self):
        self.raw_parameters["tables"]["tag"] = {"store": {"read": "redis", "write": "redis"}}
        owned = self._owned(self._resolver(), "product")
        assert not owned["tags"].join_valid
        assert owned["tags"].persistence_mode is PersistenceMode.INLINE
        # The domain shape does not depend on storage
        assert owned["tags"].representation_mode is RepresentationMode.LIST

    def test_scalar_reference(self):
        self.raw_schema["tables"]["t_product"]["cols"][7]["datatype"] = "INT"
        rel = self._owned(self._resolver(), "product")["category"]
        assert rel.representation_mode is RepresentationMode.REFERENCE
        assert rel.persistence_mode is PersistenceMode.COLUMN

    def test_referenced_modes(self):
        assert self.resolver.referenced_modes("tag") == [RepresentationMode.LIST, RepresentationMode.MAP]
        assert self.resolver.referenced_modes("category") == []
        assert self.resolver.referenced_modes("product") == []

    def test_parent_and_child_views(self):
        tag_rels = self.resolver.resolve_table("tag")
        assert len(tag_rels) == 2
        assert all(rel.is_parent and not rel.is_child for rel in tag_rels)
        assert self.resolver.owned_relationships("tag") == []

    def test_collection_relationships_and_targets(self):
        assert [rel.field_name for rel in self.resolver.collection_relationships("product")] == ["tags", "labels"]
        assert [rel.parent_table for rel in self.resolver.unique_targets("product")] == ["tag", "category"]
        assert self.resolver.relationship_for_column("product", "labels").key_field_name == "code"

    def test_duplicate_relationship_is_ignored(self):
        self.raw_schema["relations"]["r_tags_again"] = dict(self.raw_schema["relations"]["r_tags"])
        resolver = self._resolver()
        assert [rel.name for rel in resolver.valid_relationships()].count("product_tags") == 1
        assert resolver.dropped == []

    def test_missing_column_is_dropped(self):
        self.raw_schema["relations"]["r_broken"] = {
            "name": "product_missing",
            "parent": "t_tag",
            "child": "t_product",
            "c_p": "one",
            "c_ch": "many",
            "cols": [{"parentcol": "c_tag_code", "childcol": "nowhere"}],
        }
        resolver = self._resolver()
        assert "product_missing" not in [rel.name for rel in resolver.valid_relationships()]
        (relationship, reason), = resolver.dropped
        assert relationship.name == "product_missing"
        assert "nowhere" in reason

    def test_child_without_primary_key_is_dropped(self):
        self.raw_schema["tables"]["t_audit"]["cols"][0]["pk"] = False
        self.raw_schema["relations"]["r_audit"] = {
            "name": "audit_tag",
            "parent": "t_tag",
            "child": "t_audit",
            "c_p": "one",
            "c_ch": "many",
            "cols": [{"parentcol": "c_tag_code", "childcol": "c_audit_message"}],
        }
        resolver = self._resolver()
        assert "audit_tag" not in [rel.name for rel in resolver.valid_relationships()]
        (relationship, reason), = resolver.dropped
        assert reason == "child table has no primary key"

    def test_resolution_is_cached(self):
        assert self.resolver.resolve_table("product") is self.resolver.resolve_table("product")

    def test_to_dict(self):
        rel = self._owned(self.resolver, "product")["labels"]
        data = rel.to_dict()
        assert data["cardinality"] == ["many", "many"]
        assert data["representation_mode"] == "map"
        assert data["persistence_mode"] == "join"


def test_cancelled_lookup_stays_managed(lookup_schema):
    ctx = GenerationContext.from_schema(lookup_schema)
    assert [rel.field_name for rel in ctx.managed_relationships("product")] == ["tags", "labels", "category"]
    assert ctx.is_referenced_target("tag")
    assert ctx.referenced_modes("tag") == [RepresentationMode.LIST, RepresentationMode.MAP]
    assert not ctx.is_referenced_target("product")
    assert not ctx.is_referenced_target("audit_log")
