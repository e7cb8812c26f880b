# File: tests/test_generation.py
# End-to-end tests for a full generation run over the catalog schema.

import importlib
from pathlib import Path

import pytest

from ddd_auto_generator.ast_codegen_main import generate_code_from_schema, generate_domain_artifacts
from ddd_auto_generator.config import ToolConfigSchema
from ddd_auto_generator.constants import SHARED_TEMPLATES, UnexpectedError
from ddd_auto_generator.normalizer import normalize_schema

SERVICE_MODULE = "shop_catalog"

ALL_CANCELLED = {"create": True, "update": True, "delete": True, "batch": True, "get": True}


def _config(output_dir: Path, **overrides) -> ToolConfigSchema:
    return ToolConfigSchema(output_dir=str(output_dir), **overrides)


def _tree(root: Path):
    return {
        path.relative_to(root).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*.py"))
    }


@pytest.fixture
def product_dir(generated_service) -> Path:
    return generated_service["output_dir"] / SERVICE_MODULE / "product"


# === Generator Execution and File Structure Tests ===

def test_default_run_has_no_errors(generated_service):
    report = generated_service["report"]
    assert report.errors == {}
    assert report.skipped_tables == {"audit_log": "structured primary key"}
    assert report.written


def test_shared_modules(generated_service):
    shared_dir = generated_service["output_dir"] / SERVICE_MODULE / "shared"
    for file_name in SHARED_TEMPLATES.values():
        assert (shared_dir / file_name).is_file(), f"{file_name} not found in shared/"


def test_generated_entity_structure(product_dir):
    expected = [
        "domain/aggregates/product_aggregate.py",
        "domain/entities/product_entity.py",
        "domain/events/product_events.py",
        "domain/exceptions/product_domain_exception.py",
        "domain/exceptions/product_exception_message.py",
        "domain/value_objects/product_identifier.py",
        "domain/value_objects/product_domain.py",
        "domain/value_objects/tag_list.py",
        "domain/value_objects/tag_set.py",
        "domain/value_objects/category_value.py",
        "domain/value_objects/product_projection_keys.py",
        "infrastructure/persistence/product_mapping.py",
        "application/dtos/product_dto.py",
        "application/commands/product_commands.py",
        "application/queries/product_queries.py",
        "application/permissions/product_permissions.py",
    ]
    for relative in expected:
        assert (product_dir / relative).is_file(), f"{relative} not generated"


def test_every_generated_module_imports(generated_service):
    root = generated_service["output_dir"]
    for path in sorted((root / SERVICE_MODULE).rglob("*.py")):
        module_name = ".".join(path.relative_to(root).with_suffix("").parts)
        if module_name.endswith(".__init__"):
            module_name = module_name[: -len(".__init__")]
        importlib.import_module(module_name)


def test_dto_aliases_column_names(generated_service):
    dtos = importlib.import_module(f"{SERVICE_MODULE}.product.application.dtos.product_dto")
    dto = dtos.CreateProductDto(name="Widget", status="draft", isDefault=True, tags=[])
    assert dto.is_default is True
    assert dto.code is None


def test_index_files_are_aggregated(generated_service, product_dir):
    root = generated_service["output_dir"] / SERVICE_MODULE
    assert (root / "__init__.py").is_file()
    assert (product_dir / "__init__.py").is_file()
    aggregates_index = (product_dir / "domain" / "aggregates" / "__init__.py").read_text(encoding="utf-8")
    assert "Product" in aggregates_index
    assert "__all__" in aggregates_index


def test_skipped_table_has_no_package(generated_service):
    assert not (generated_service["output_dir"] / SERVICE_MODULE / "audit_log").exists()


def test_error_catalog_in_report(generated_service):
    catalog = generated_service["report"].error_catalog
    assert set(catalog) == {"category", "product", "tag"}
    assert "not_found" in catalog["product"]
    assert catalog["product"]["not_found"]["status_code"] == 404
    assert "identifier_required" in catalog["tag"]


def test_deferred_rules_are_reported(generated_service):
    rules = generated_service["report"].unimplemented_rules
    assert rules["product"] == ["category_compatibility", "entity_combinations", "active_dependency_before_deletion"]
    assert rules["category"] == ["active_dependency_before_deletion"]
    assert "tag" not in rules


# === Idempotence and Determinism ===

def test_generation_is_deterministic(catalog_schema, raw_schema, raw_parameters, tmp_path):
    generate_domain_artifacts(catalog_schema, _config(tmp_path / "first"))
    second_schema = normalize_schema(SERVICE_MODULE, raw_schema, raw_parameters)
    generate_domain_artifacts(second_schema, _config(tmp_path / "second"))
    assert _tree(tmp_path / "first") == _tree(tmp_path / "second")


def test_rerun_keeps_existing_files(catalog_schema, tmp_path):
    first = generate_domain_artifacts(catalog_schema, _config(tmp_path / "out"))
    second = generate_domain_artifacts(catalog_schema, _config(tmp_path / "out"))
    assert second.written == []
    assert sorted(second.unchanged) == sorted(first.written)


def test_forced_rerun_writes_nothing_new(catalog_schema, tmp_path):
    generate_domain_artifacts(catalog_schema, _config(tmp_path / "out"))
    report = generate_domain_artifacts(catalog_schema, _config(tmp_path / "out", force=True))
    assert report.written == []


def test_dry_run_writes_nothing(catalog_schema, tmp_path):
    report = generate_domain_artifacts(catalog_schema, _config(tmp_path / "out", dry_run=True))
    assert report.written
    assert not (tmp_path / "out").exists()


# === Selection, Exclusion and Rule Modes ===

def test_include_tables(catalog_schema, tmp_path):
    report = generate_domain_artifacts(catalog_schema, _config(tmp_path / "out", include_tables=["tag"]))
    root = tmp_path / "out" / SERVICE_MODULE
    assert (root / "tag" / "domain" / "aggregates" / "tag_aggregate.py").is_file()
    assert not (root / "product").exists()
    assert report.skipped_tables == {}
    assert set(report.error_catalog) == {"tag"}


def test_exclude_tables(catalog_schema, tmp_path):
    generate_domain_artifacts(catalog_schema, _config(tmp_path / "out", exclude_tables=["category"]))
    assert not (tmp_path / "out" / SERVICE_MODULE / "category").exists()


def test_per_entity_excluded_files(raw_schema, raw_parameters, tmp_path):
    raw_parameters["tables"]["product"]["excluded"] = ["product_permissions.py"]
    schema = normalize_schema(SERVICE_MODULE, raw_schema, raw_parameters)
    report = generate_domain_artifacts(schema, _config(tmp_path / "out"))

    permissions = tmp_path / "out" / SERVICE_MODULE / "product" / "application" / "permissions"
    assert not (permissions / "product_permissions.py").exists()
    assert f"{SERVICE_MODULE}/product/application/permissions/product_permissions.py" in report.excluded
    assert (tmp_path / "out" / SERVICE_MODULE / "tag" / "application" / "permissions" / "tag_permissions.py").is_file()


def test_block_mode_records_aggregate_failures(catalog_schema, tmp_path):
    report = generate_domain_artifacts(catalog_schema, _config(tmp_path / "out", unimplemented_rules="block"))
    assert sorted(report.errors) == ["category.aggregate", "product.aggregate"]

    error = report.errors["product.aggregate"]
    assert error["code"] == UnexpectedError.CODE
    assert error["status_code"] == UnexpectedError.STATUS_CODE
    assert error["message"].startswith("product.aggregate: Unimplemented business rules")

    root = tmp_path / "out" / SERVICE_MODULE
    assert not (root / "product" / "domain" / "aggregates" / "product_aggregate.py").exists()
    assert (root / "tag" / "domain" / "aggregates" / "tag_aggregate.py").is_file()
    assert (root / "product" / "domain" / "entities" / "product_entity.py").is_file()


def test_generate_from_schema_directory(schemas_dir, tmp_path):
    config = _config(tmp_path / "out", schemas_dir=str(schemas_dir))
    report = generate_code_from_schema(SERVICE_MODULE, config)
    assert report.errors == {}
    assert (tmp_path / "out" / SERVICE_MODULE / "product" / "domain" / "aggregates" / "product_aggregate.py").is_file()


# === Referenced Tables Without an Aggregate ===

def test_cancelled_lookup_table_gets_value_helpers(lookup_service):
    report = lookup_service["report"]
    assert report.errors == {}
    assert report.skipped_tables == {
        "tag": "all operations cancelled and no custom APIs",
        "audit_log": "structured primary key",
    }

    tag_dir = lookup_service["output_dir"] / SERVICE_MODULE / "tag"
    assert (tag_dir / "domain" / "value_objects" / "tag_domain.py").is_file()
    assert (tag_dir / "domain" / "exceptions" / "tag_domain_exception.py").is_file()
    assert (tag_dir / "domain" / "exceptions" / "tag_exception_message.py").is_file()
    assert not (tag_dir / "domain" / "aggregates").exists()
    assert not (tag_dir / "domain" / "value_objects" / "tag_identifier.py").exists()
    assert "code_required" in report.error_catalog["tag"]
    assert "tag" not in report.unimplemented_rules


def test_cancelled_lookup_tree_imports(lookup_service):
    root = lookup_service["output_dir"]
    for path in sorted((root / SERVICE_MODULE).rglob("*.py")):
        module_name = ".".join(path.relative_to(root).with_suffix("").parts)
        if module_name.endswith(".__init__"):
            module_name = module_name[: -len(".__init__")]
        importlib.import_module(module_name)


def test_unreferenced_cancelled_table_is_only_skipped(raw_schema, raw_parameters, tmp_path):
    raw_parameters["tables"]["product"] = {"cancel": dict(ALL_CANCELLED)}
    schema = normalize_schema(SERVICE_MODULE, raw_schema, raw_parameters)
    report = generate_domain_artifacts(schema, _config(tmp_path / "out"))
    assert report.skipped_tables["product"] == "all operations cancelled and no custom APIs"
    assert not (tmp_path / "out" / SERVICE_MODULE / "product").exists()
    assert "product" not in report.error_catalog
