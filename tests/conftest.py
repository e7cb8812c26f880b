# File: tests/conftest.py
# Shared fixtures: a small catalog schema exercising every relationship shape,
# a few variants of it, plus generated trees that tests can import.

import copy
import json
import sys
from pathlib import Path
from typing import Any, Dict, Generator

import pytest
import yaml
from faker import Faker

from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.ast_codegen_main import generate_domain_artifacts
from ddd_auto_generator.config import ToolConfigSchema
from ddd_auto_generator.normalizer import normalize_schema


SERVICE_MODULE = "shop_catalog"


# --- Raw schema ---

CATALOG_SCHEMA: Dict[str, Any] = {
    "tables": {
        "t_tag": {
            "id": "t_tag",
            "name": "tag",
            "cols": [
                {"id": "c_tag_code", "name": "code", "datatype": "VARCHAR", "param": "32", "pk": True},
                {"id": "c_tag_label", "name": "label", "datatype": "VARCHAR", "param": "64"},
            ],
        },
        "t_category": {
            "id": "t_category",
            "name": "category",
            "cols": [
                {"id": "c_category_id", "name": "id", "datatype": "INT", "pk": True},
                {"id": "c_category_name", "name": "name", "datatype": "VARCHAR", "nn": True},
                {"id": "c_category_active", "name": "active", "datatype": "BOOLEAN"},
                {"id": "c_category_default", "name": "isDefault", "datatype": "BOOLEAN"},
            ],
        },
        "t_product": {
            "id": "t_product",
            "name": "product",
            "cols": [
                {"id": "c_product_code", "name": "code", "datatype": "VARCHAR", "pk": True, "defaultvalue": "uuid()"},
                {"id": "c_product_name", "name": "name", "datatype": "VARCHAR", "param": "128", "nn": True},
                {"id": "c_product_enabled", "name": "enabled", "datatype": "BOOLEAN"},
                {
                    "id": "c_product_status",
                    "name": "status",
                    "datatype": "ENUM",
                    "enum": "'draft','published','archived'",
                    "nn": True,
                },
                {"id": "c_product_default", "name": "isDefault", "datatype": "BOOLEAN"},
                {"id": "c_product_tags", "name": "tags", "datatype": "JSON", "nn": True},
                {"id": "c_product_labels", "name": "labels", "datatype": "JSON", "defaultvalue": "object()"},
                {"id": "c_product_category", "name": "category", "datatype": "JSON"},
                {"id": "c_product_tenant", "name": "tenant", "datatype": "VARCHAR"},
            ],
            "indexes": [
                {"name": "idx_product_name", "cols": [{"colid": "c_product_name"}], "unique": True},
            ],
        },
        "t_audit": {
            "id": "t_audit",
            "name": "audit_log",
            "cols": [
                {"id": "c_audit_key", "name": "key", "datatype": "JSON", "pk": True},
                {"id": "c_audit_message", "name": "message", "datatype": "TEXT"},
            ],
        },
    },
    "relations": {
        "r_tags": {
            "name": "product_tags",
            "parent": "t_tag",
            "child": "t_product",
            "c_p": "many",
            "c_ch": "many",
            "cols": [{"parentcol": "c_tag_code", "childcol": "c_product_tags"}],
        },
        "r_labels": {
            "name": "product_labels",
            "parent": "t_tag",
            "child": "t_product",
            "c_p": "many",
            "c_ch": "many",
            "cols": [{"parentcol": "c_tag_code", "childcol": "c_product_labels"}],
        },
        "r_category": {
            "name": "product_category",
            "parent": "category",
            "child": "product",
            "c_p": "one",
            "c_ch": "many",
            "cols": [{"parentcol": "id", "childcol": "category"}],
        },
    },
}

ALL_CANCELLED: Dict[str, bool] = {"create": True, "update": True, "delete": True, "batch": True, "get": True}

CATALOG_PARAMETERS: Dict[str, Any] = {
    "service": {"name": "Shop Catalog"},
    "tables": {
        "product": {
            "apis": {
                "publish/:channel": {
                    "method": "post",
                    "description": "Publish the product on a sales channel",
                    "params": {"channel": {"type": "string"}},
                },
            },
        },
    },
}


@pytest.fixture
def raw_schema() -> Dict[str, Any]:
    """A fresh copy of the raw catalog schema; tests may mutate it."""
    return copy.deepcopy(CATALOG_SCHEMA)


@pytest.fixture
def raw_parameters() -> Dict[str, Any]:
    return copy.deepcopy(CATALOG_PARAMETERS)


@pytest.fixture
def catalog_schema(raw_schema, raw_parameters):
    return normalize_schema(SERVICE_MODULE, raw_schema, raw_parameters)


@pytest.fixture
def catalog_ctx(catalog_schema) -> GenerationContext:
    return GenerationContext.from_schema(catalog_schema)


@pytest.fixture
def fake() -> Faker:
    Faker.seed(1234)
    return Faker()


@pytest.fixture
def schemas_dir(tmp_path, raw_schema, raw_parameters) -> Path:
    """A schemas directory holding the catalog as ``shop_catalog/``."""
    schema_dir = tmp_path / "schemas" / SERVICE_MODULE
    schema_dir.mkdir(parents=True)
    (schema_dir / "schema.json").write_text(json.dumps(raw_schema), encoding="utf-8")
    (schema_dir / "parameters.yaml").write_text(yaml.safe_dump(raw_parameters), encoding="utf-8")
    return tmp_path / "schemas"


@pytest.fixture
def tool_config(tmp_path) -> ToolConfigSchema:
    return ToolConfigSchema(output_dir=str(tmp_path / "out"), schemas_dir=str(tmp_path / "schemas"))


def _forget_generated_modules() -> None:
    for name in [name for name in sys.modules if name == SERVICE_MODULE or name.startswith(f"{SERVICE_MODULE}.")]:
        del sys.modules[name]


def _importable_tree(schema, config: ToolConfigSchema) -> Generator[Dict[str, Any], None, None]:
    report = generate_domain_artifacts(schema, config)
    output_dir = config.output_dir
    _forget_generated_modules()
    sys.path.insert(0, output_dir)
    try:
        yield {"report": report, "output_dir": Path(output_dir)}
    finally:
        sys.path.remove(output_dir)
        _forget_generated_modules()


@pytest.fixture
def generated_service(catalog_schema, tool_config) -> Generator[Dict[str, Any], None, None]:
    """
    Generate the catalog tree and make it importable.

    Yields the report and the output directory; the generated package is
    removed from ``sys.modules`` afterwards so every test imports its own tree.
    """
    yield from _importable_tree(catalog_schema, tool_config)


# --- Schema variants ---

@pytest.fixture
def lookup_schema(raw_schema, raw_parameters):
    """The catalog with every operation of ``tag`` cancelled; products still hold tags by value."""
    raw_parameters["tables"]["tag"] = {"cancel": dict(ALL_CANCELLED)}
    return normalize_schema(SERVICE_MODULE, raw_schema, raw_parameters)


@pytest.fixture
def lookup_service(lookup_schema, tool_config) -> Generator[Dict[str, Any], None, None]:
    yield from _importable_tree(lookup_schema, tool_config)


@pytest.fixture
def natural_key_schema(raw_schema, raw_parameters):
    """
    The catalog with ``tag`` keyed by a numeric id.

    Products keep referencing tags by their code, so relationship keys and
    the primary key of the referenced table differ.
    """
    raw_schema["tables"]["t_tag"]["cols"] = [
        {"id": "c_tag_id", "name": "id", "datatype": "INT", "pk": True},
        {"id": "c_tag_code", "name": "code", "datatype": "VARCHAR", "param": "32", "unique": True},
        {"id": "c_tag_label", "name": "label", "datatype": "VARCHAR", "param": "64"},
    ]
    return normalize_schema(SERVICE_MODULE, raw_schema, raw_parameters)


@pytest.fixture
def natural_key_service(natural_key_schema, tool_config) -> Generator[Dict[str, Any], None, None]:
    yield from _importable_tree(natural_key_schema, tool_config)
