"""
Tests for table eligibility classification.
"""

from unittest import TestCase

import pytest

from ddd_auto_generator.domain.classification import classify_table, classify_tables, eligible_tables
from ddd_auto_generator.domain.models import TableClassification
from ddd_auto_generator.normalizer import normalize_schema


ALL_CANCELLED = {"create": True, "update": True, "delete": True, "batch": True, "get": True}


class TestClassification(TestCase):
    """Test cases for classify_table"""

    @pytest.fixture(autouse=True)
    def _schema(self, catalog_schema, raw_schema, raw_parameters):
        self.schema = catalog_schema
        self.raw_schema = raw_schema
        self.raw_parameters = raw_parameters

    def _classify(self, table_name):
        schema = normalize_schema("shop_catalog", self.raw_schema, self.raw_parameters)
        return classify_table(schema.get_table(table_name), schema.config_for(table_name))

    def test_catalog_tables(self):
        classifications = classify_tables(self.schema.tables, self.schema.entity_configs)
        assert classifications == {
            "tag": TableClassification.ELIGIBLE,
            "category": TableClassification.ELIGIBLE,
            "product": TableClassification.ELIGIBLE,
            "audit_log": TableClassification.STRUCTURED_PRIMARY_KEY,
        }
        assert [table.name for table in eligible_tables(self.schema.tables, self.schema.entity_configs)] == [
            "tag", "category", "product"
        ]

    def test_no_primary_key(self):
        self.raw_schema["tables"]["t_tag"]["cols"][0]["pk"] = False
        assert self._classify("tag") is TableClassification.NO_PRIMARY_KEY

    def test_composite_primary_key(self):
        self.raw_schema["tables"]["t_tag"]["cols"][1]["pk"] = True
        assert self._classify("tag") is TableClassification.COMPOSITE_PRIMARY_KEY
        assert not TableClassification.COMPOSITE_PRIMARY_KEY.has_scalar_key

    def test_structured_key_is_checked_first(self):
        # Structured and composite at once still reports the structured key
        self.raw_schema["tables"]["t_audit"]["cols"][1]["pk"] = True
        assert self._classify("audit_log") is TableClassification.STRUCTURED_PRIMARY_KEY

    def test_all_operations_cancelled(self):
        self.raw_parameters["tables"]["tag"] = {"cancel": dict(ALL_CANCELLED)}
        classification = self._classify("tag")
        assert classification is TableClassification.ALL_OPERATIONS_CANCELLED
        assert not classification.is_eligible
        assert classification.has_scalar_key

    def test_cancelled_table_with_custom_api_stays_eligible(self):
        self.raw_parameters["tables"]["product"]["cancel"] = dict(ALL_CANCELLED)
        assert self._classify("product") is TableClassification.ELIGIBLE

    def test_partially_cancelled_table_is_eligible(self):
        self.raw_parameters["tables"]["tag"] = {"cancel": {"delete": True}}
        assert self._classify("tag") is TableClassification.ELIGIBLE
