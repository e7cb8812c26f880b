"""
Behavioural tests for the generated aggregates.

The catalog schema is generated into a temporary directory and the
resulting ``shop_catalog`` package is imported and driven directly.
"""

import importlib
from unittest import TestCase

import pytest


def _load(module, name):
    return getattr(importlib.import_module(f"shop_catalog.{module}"), name)


class GeneratedAggregateTestCase(TestCase):
    """Base class wiring the generated classes onto the test case"""

    @pytest.fixture(autouse=True)
    def _generated(self, generated_service, fake):
        self.load_product(fake)
        self.Category = _load("category.domain.aggregates.category_aggregate", "Category")
        self.Tag = _load("tag.domain.aggregates.tag_aggregate", "Tag")

    def load_product(self, fake):
        self.fake = fake
        self.UserToken = _load("shared.user_token", "UserToken")
        self.Product = _load("product.domain.aggregates.product_aggregate", "Product")
        self.ProductStatusEnum = _load("product.domain.entities.product_entity", "ProductStatusEnum")
        self.ProductDomainException = _load(
            "product.domain.exceptions.product_domain_exception", "ProductDomainException"
        )
        self.CategoryDomainException = _load(
            "category.domain.exceptions.category_domain_exception", "CategoryDomainException"
        )
        self.TagDomainException = _load("tag.domain.exceptions.tag_domain_exception", "TagDomainException")
        self.user = self.UserToken(user_id=fake.uuid4(), tenant="acme")

    def product_props(self, **overrides):
        props = {
            "name": self.fake.word(),
            "enabled": True,
            "status": "draft",
            "is_default": False,
            "tags": [{"code": "red", "label": "Red"}],
            "labels": None,
            "category": None,
        }
        props.update(overrides)
        return props

    def new_product(self, **overrides):
        product = self.Product.create(self.user, self.product_props(**overrides))
        product.commit()
        return product

    def event_types(self, aggregate):
        return [event.event_type for event in aggregate.get_uncommitted_events()]


class TestCreation(GeneratedAggregateTestCase):
    """Test cases for construction and the create factory"""

    def test_create_generates_identifier_and_records_event(self):
        product = self.Product.create(self.user, self.product_props())
        assert len(product.get_id().value) == 36
        assert product.version == 1
        (event,) = product.get_uncommitted_events()
        assert event.event_type == "product.created.v1"
        assert event.aggregate_type == "Product"
        assert event.aggregate_id == product.code.value
        data = event.to_dict()
        assert data["user_id"] == self.user.user_id
        assert data["tenant"] == "acme"
        assert data["props"]["status"] == "draft"

    def test_create_keeps_a_given_identifier(self):
        product = self.Product.create(self.user, self.product_props(code="sku-1"))
        assert product.get_id().value == "sku-1"

    def test_create_requires_a_user(self):
        with self.assertRaises(self.ProductDomainException) as raised:
            self.Product.create(None, self.product_props())
        assert raised.exception.code == "USER_REQUIRED_FOR_OPERATION_PRODUCT"

    def test_from_entity_emits_nothing(self):
        product = self.Product.from_entity(self.product_props(code="sku-1"))
        assert product.get_uncommitted_events() == []
        assert product.version == 0
        assert product.status is self.ProductStatusEnum.DRAFT

    def test_required_fields_are_validated(self):
        with self.assertRaises(self.ProductDomainException) as raised:
            self.Product.from_entity(self.product_props(code="sku-1", name="  "))
        assert raised.exception.code == "INVALID_NAME_VALUE_PRODUCT"
        assert raised.exception.message == "Name is required and cannot be empty"

    def test_invalid_enum_value(self):
        with self.assertRaises(self.ProductDomainException) as raised:
            self.Product.from_entity(self.product_props(code="sku-1", status="deleted"))
        assert raised.exception.code == "INVALID_STATUS_PRODUCT"

    def test_unimplemented_rules_are_flagged(self):
        product = self.new_product()
        assert product.flagged_rules == (
            "category_compatibility",
            "entity_combinations",
            "active_dependency_before_deletion",
        )
        assert self.Tag.from_entity({"code": "red"}).flagged_rules == ()

    def test_props_and_dto(self):
        product = self.new_product(code="sku-1", category={"id": 3, "name": "Tools"})
        props = product.to_props()
        assert props["code"] == "sku-1"
        assert props["status"] is self.ProductStatusEnum.DRAFT
        assert props["tags"] == [{"code": "red", "label": "Red"}]
        assert props["labels"] == {}
        assert props["category"] == {"id": 3, "name": "Tools"}
        assert "tenant" not in props
        assert product.to_dto()["status"] == "draft"


class TestFieldUpdates(GeneratedAggregateTestCase):
    """Test cases for update_<field>"""

    def test_update_strips_and_records_event(self):
        product = self.new_product(name="Old")
        product.update_name(self.user, "  New  ")
        assert product.name == "New"
        (event,) = product.get_uncommitted_events()
        assert event.event_type == "product.updated.v1"
        assert event.props == {"name": "New"}

    def test_unchanged_value_is_a_no_op(self):
        product = self.new_product(name="Same")
        product.update_name(self.user, "Same ")
        assert product.get_uncommitted_events() == []
        assert product.version == 1

    def test_update_without_event(self):
        product = self.new_product()
        product.update_is_default(self.user, True, emit_event=False)
        assert product.is_default is True
        assert product.get_uncommitted_events() == []

    def test_required_field(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.update_name(self.user, "")
        assert raised.exception.code == "INVALID_NAME_VALUE_PRODUCT"

    def test_user_is_checked_first(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.update_name(None, "")
        assert raised.exception.code == "USER_REQUIRED_FOR_UPDATES_PRODUCT"

    def test_embedded_update(self):
        product = self.new_product()
        product.update_category(self.user, {"id": 3, "name": "Tools"})
        assert product.category.key == 3
        assert self.event_types(product) == ["product.updated.v1"]
        assert product.get_uncommitted_events()[0].props == {"category": {"id": 3, "name": "Tools"}}

        product.commit()
        product.update_category(self.user, {"id": 3, "name": "Tools"})
        assert product.get_uncommitted_events() == []

    def test_embedded_value_is_validated(self):
        product = self.new_product()
        with self.assertRaises(self.CategoryDomainException) as raised:
            product.update_category(self.user, {"name": "No key"})
        assert raised.exception.code == "INVALID_ID_VALUE_CATEGORY"

    def test_embedded_value_needs_required_fields(self):
        product = self.new_product()
        with self.assertRaises(self.CategoryDomainException) as raised:
            product.update_category(self.user, {"id": 3})
        assert raised.exception.code == "INVALID_NAME_VALUE_CATEGORY"
        assert product.category is None


class TestLifecycle(GeneratedAggregateTestCase):
    """Test cases for enable/disable, status and deletion"""

    def test_enable_and_disable(self):
        product = self.new_product(enabled=True)
        product.enable(self.user)
        assert product.get_uncommitted_events() == []

        product.disable(self.user)
        assert product.enabled is False
        (event,) = product.get_uncommitted_events()
        assert event.event_type == "product.disabled.v1"
        assert event.props == {"enabled": False}

    def test_toggles_require_a_user(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.disable(None)
        assert raised.exception.code == "USER_REQUIRED_FOR_DISABLE_PRODUCT"

    def test_update_status(self):
        product = self.new_product(status="draft")
        product.update_status(self.user, "published")
        assert product.status is self.ProductStatusEnum.PUBLISHED
        (event,) = product.get_uncommitted_events()
        assert event.event_type == "product.statusUpdated.v1"
        assert event.props == {"status": "published"}

    def test_unchanged_status_is_a_no_op(self):
        product = self.new_product(status="draft")
        product.update_status(self.user, self.ProductStatusEnum.DRAFT)
        assert product.get_uncommitted_events() == []

    def test_invalid_status(self):
        product = self.new_product()
        for status in (None, "gone"):
            with self.assertRaises(self.ProductDomainException) as raised:
                product.update_status(self.user, status)
            assert raised.exception.code == "INVALID_STATUS_PRODUCT"

    def test_mark_for_deletion(self):
        product = self.new_product()
        product.mark_for_deletion(self.user)
        (event,) = product.get_uncommitted_events()
        assert event.event_type == "product.deleted.v1"
        assert event.props["name"] == product.name

    def test_default_cannot_be_deleted(self):
        product = self.new_product(is_default=True)
        with self.assertRaises(self.ProductDomainException) as raised:
            product.mark_for_deletion(self.user)
        assert raised.exception.code == "CANNOT_DELETE_DEFAULT_PRODUCT"
        assert raised.exception.status_code == 409


class TestActiveDefaultRules(GeneratedAggregateTestCase):
    """Test cases for the rules linking active and is_default"""

    def category(self, **props):
        return self.Category.from_entity({"id": 1, "name": "Tools", "active": True, "is_default": False, **props})

    def test_cannot_deactivate_default(self):
        category = self.category(is_default=True)
        with self.assertRaises(self.CategoryDomainException) as raised:
            category.update_active(self.user, False)
        assert raised.exception.code == "CANNOT_DEACTIVATE_DEFAULT_CATEGORY"
        assert raised.exception.status_code == 409

    def test_cannot_set_inactive_as_default(self):
        category = self.category(active=False)
        with self.assertRaises(self.CategoryDomainException) as raised:
            category.update_is_default(self.user, True)
        assert raised.exception.code == "CANNOT_SET_INACTIVE_AS_DEFAULT_CATEGORY"

    def test_active_category_can_become_default(self):
        category = self.category()
        category.update_is_default(self.user, True)
        assert category.is_default is True
        assert self.event_types(category) == ["category.updated.v1"]
        assert category.flagged_rules == ("active_dependency_before_deletion",)


class TestCollections(GeneratedAggregateTestCase):
    """Test cases for the list and keyed-set operators"""

    def test_add_item(self):
        product = self.new_product()
        product.add_tag(self.user, {"code": "blue"})
        assert product.tags.keys() == ["red", "blue"]
        (event,) = product.get_uncommitted_events()
        assert event.event_type == "product.tagAdded.v1"
        assert event.props == {"tag": {"code": "blue"}}

    def test_duplicate_item(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.add_tag(self.user, {"code": "red"})
        assert raised.exception.code == "DUPLICATE_TAG_PRODUCT"
        assert raised.exception.status_code == 409

    def test_duplicate_keys_on_create(self):
        with self.assertRaises(self.ProductDomainException) as raised:
            self.Product.create(self.user, self.product_props(tags=[{"code": "red"}, {"code": "red", "label": "Red"}]))
        assert raised.exception.code == "DUPLICATE_TAG_PRODUCT"

    def test_invalid_item(self):
        product = self.new_product()
        for item in ("blue", {"label": "No code"}):
            with self.assertRaises(self.ProductDomainException) as raised:
                product.add_tag(self.user, item)
            assert raised.exception.code == "INVALID_TAG_DATA_PRODUCT"

    def test_remove_item(self):
        product = self.new_product(tags=[{"code": "red"}, {"code": "blue"}])
        product.remove_tag(self.user, "red")
        assert product.tags.keys() == ["blue"]
        (event,) = product.get_uncommitted_events()
        assert event.event_type == "product.tagRemoved.v1"
        assert event.props == {"code": "red"}

    def test_removing_missing_item_is_a_no_op(self):
        product = self.new_product()
        product.remove_tag(self.user, "missing")
        assert product.get_uncommitted_events() == []

    def test_required_collection_keeps_one_item(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.remove_tag(self.user, "red")
        assert raised.exception.code == "TAGS_ONE_REQUIRED_PRODUCT"

    def test_remove_requires_a_key(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.remove_tag(self.user, None)
        assert raised.exception.code == "INVALID_TAG_CODE_PARAMETER_PRODUCT"

    def test_collection_operators_require_a_user(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.add_label(None, {"code": "x"})
        assert raised.exception.code == "USER_REQUIRED_FOR_LABEL_OPERATIONS_PRODUCT"

    def test_optional_map_can_be_emptied(self):
        product = self.new_product(labels=[{"code": "sale"}])
        assert product.labels.keys() == ["sale"]
        product.remove_label(self.user, "sale")
        assert product.labels.is_empty()

    def test_bulk_management(self):
        product = self.new_product(tags=[{"code": "red"}, {"code": "blue"}])
        product.manage_tags_in_bulk(self.user, add=[{"code": "green"}], remove=["blue"])
        assert product.tags.keys() == ["red", "green"]
        assert self.event_types(product) == ["product.tagRemoved.v1", "product.tagAdded.v1"]

    def test_invalid_nested_item_uses_the_referenced_catalog(self):
        with self.assertRaises(self.TagDomainException) as raised:
            self.new_product(tags=[{"code": " "}])
        assert raised.exception.code == "INVALID_CODE_VALUE_TAG"


class TestCustomOperators(GeneratedAggregateTestCase):
    """Test cases for operators generated from custom APIs"""

    def test_custom_operator_records_event(self):
        product = self.new_product()
        product.publish_channel(self.user, "web")
        (event,) = product.get_uncommitted_events()
        assert type(event).__name__ == "ProductPublishChannelEvent"
        assert event.event_type == "product.publishChannel.completed.v1"
        assert event.props == {"channel": "web"}

    def test_custom_operator_runs_the_rule_hook(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException):
            product.publish_channel(None, "web")

        calls = []
        product._check_publish_channel_rules = lambda user, channel: calls.append(channel)
        product.publish_channel(self.user, "app")
        assert calls == ["app"]


class TestCancelledLookupTable(GeneratedAggregateTestCase):
    """Test cases for a referenced table whose own operations are all cancelled"""

    @pytest.fixture(autouse=True)
    def _generated(self, lookup_service, fake):
        self.load_product(fake)

    def test_collection_operators_are_kept(self):
        assert hasattr(self.Product, "add_tag")
        assert hasattr(self.Product, "remove_label")
        product = self.new_product()
        product.add_tag(self.user, {"code": "blue"})
        assert product.tags.keys() == ["red", "blue"]

    def test_duplicates_are_rejected(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.add_tag(self.user, {"code": "red"})
        assert raised.exception.code == "DUPLICATE_TAG_PRODUCT"

        with self.assertRaises(self.ProductDomainException) as raised:
            self.Product.create(self.user, self.product_props(tags=["red", "red"]))
        assert raised.exception.code == "DUPLICATE_TAG_PRODUCT"

    def test_required_collection_keeps_one_item(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.remove_tag(self.user, "red")
        assert raised.exception.code == "TAGS_ONE_REQUIRED_PRODUCT"

    def test_items_use_the_lookup_catalog(self):
        with self.assertRaises(self.TagDomainException) as raised:
            self.new_product(tags=[{"code": " "}])
        assert raised.exception.code == "INVALID_CODE_VALUE_TAG"


class TestNaturalKeyCollections(GeneratedAggregateTestCase):
    """Test cases for collections referencing a unique column that is not the primary key"""

    @pytest.fixture(autouse=True)
    def _generated(self, natural_key_service, fake):
        self.load_product(fake)

    def test_items_are_keyed_by_the_referenced_column(self):
        product = self.new_product(labels=[{"id": 1, "code": "sale"}, {"id": 2, "code": "new"}])
        assert product.labels.keys() == ["sale", "new"]
        product.remove_label(self.user, "sale")
        assert product.labels.keys() == ["new"]

    def test_duplicate_natural_key(self):
        product = self.new_product(labels=[{"code": "sale"}])
        with self.assertRaises(self.ProductDomainException) as raised:
            product.add_label(self.user, {"id": 9, "code": "sale"})
        assert raised.exception.code == "DUPLICATE_LABEL_PRODUCT"

    def test_items_need_the_referenced_key(self):
        product = self.new_product()
        with self.assertRaises(self.ProductDomainException) as raised:
            product.add_tag(self.user, {"id": 4})
        assert raised.exception.code == "INVALID_TAG_DATA_PRODUCT"
