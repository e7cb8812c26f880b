"""
Validation utilities for the domain artifact generator.

The raw schema document is checked here before normalization. Structural
problems that make the document unusable are errors; suspicious but usable
input (unknown default-value markers, relations pointing at tables that do
not exist) only produces warnings.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List

from .constants import DefaultMarkers, FieldNames


MARKER_PATTERN = re.compile(r"^\s*[A-Za-z_][A-Za-z0-9_]*\(\)\s*$")


@dataclass
class ValidationResult:
    """Result of a validation operation."""

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def __post_init__(self):
        """Ensure consistency."""
        if self.errors and self.is_valid:
            self.is_valid = False

    def add_error(self, error: str) -> None:
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def merge(self, other: "ValidationResult") -> None:
        for error in other.errors:
            self.add_error(error)
        self.warnings.extend(other.warnings)


class RawSchemaValidator:
    """Validates the raw schema document produced by the schema designer."""

    REQUIRED_RELATION_KEYS = ("parent", "child", "c_p", "c_ch", "cols")
    CARDINALITIES = ("one", "many")

    @classmethod
    def validate(cls, raw_schema: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult(True, [], [])

        if not isinstance(raw_schema, dict):
            result.add_error("Schema document must be a JSON object")
            return result

        tables = raw_schema.get("tables")
        if not isinstance(tables, dict) or not tables:
            result.add_error("Schema document must contain a non-empty 'tables' object")
            return result

        seen_names = set()
        for table_id, table in tables.items():
            result.merge(cls.validate_table(table_id, table))
            name = table.get("name") if isinstance(table, dict) else None
            if name in seen_names:
                result.add_error(f"Duplicate table name '{name}'")
            seen_names.add(name)

        relations = raw_schema.get("relations") or {}
        if not isinstance(relations, dict):
            result.add_error("'relations' must be an object keyed by relation id")
            return result

        for relation_id, relation in relations.items():
            result.merge(cls.validate_relation(relation_id, relation, tables))

        return result

    @classmethod
    def validate_table(cls, table_id: str, table: Any) -> ValidationResult:
        result = ValidationResult(True, [], [])

        if not isinstance(table, dict):
            result.add_error(f"Table '{table_id}' must be an object")
            return result

        name = table.get("name")
        if not name or not isinstance(name, str):
            result.add_error(f"Table '{table_id}' has no name")
            return result

        columns = table.get("cols")
        if not isinstance(columns, list):
            result.add_error(f"Table '{name}' must have a 'cols' list")
            return result

        seen_columns = set()
        for index, column in enumerate(columns):
            if not isinstance(column, dict) or not column.get("name"):
                result.add_error(f"Column #{index} of table '{name}' has no name")
                continue
            column_name = column["name"]
            if column_name in seen_columns:
                result.add_error(f"Duplicate column '{column_name}' in table '{name}'")
            seen_columns.add(column_name)

            if not column.get("datatype"):
                result.add_warning(f"Column '{name}.{column_name}' has no datatype; it is treated as untyped")

            default = column.get("defaultvalue")
            if isinstance(default, str) and MARKER_PATTERN.match(default):
                if default.strip() not in DefaultMarkers.KNOWN:
                    result.add_warning(
                        f"Column '{name}.{column_name}' uses unknown default marker '{default.strip()}'; "
                        f"it is kept as an ordinary default"
                    )

            if column.get("pk") and column.get("defaultvalue") == DefaultMarkers.EMPTY_STRUCTURE:
                result.add_warning(f"Primary key column '{name}.{column_name}' defaults to an empty structure")

            if column_name in FieldNames.RESERVED_MEMBERS:
                result.add_warning(
                    f"Column '{name}.{column_name}' clashes with a generated aggregate member name"
                )

        return result

    @classmethod
    def validate_relation(cls, relation_id: str, relation: Any, tables: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult(True, [], [])

        if not isinstance(relation, dict):
            result.add_error(f"Relation '{relation_id}' must be an object")
            return result

        missing = [key for key in cls.REQUIRED_RELATION_KEYS if key not in relation]
        if missing:
            result.add_warning(f"Relation '{relation_id}' is missing {', '.join(missing)}; it will be dropped")
            return result

        table_names = {table.get("name") for table in tables.values() if isinstance(table, dict)}
        for side in ("parent", "child"):
            if relation[side] not in tables and relation[side] not in table_names:
                result.add_warning(f"Relation '{relation_id}' references unknown {side} table '{relation[side]}'")

        for side in ("c_p", "c_ch"):
            if relation[side] not in cls.CARDINALITIES:
                result.add_warning(
                    f"Relation '{relation_id}' has cardinality {side}='{relation[side]}'; "
                    f"expected one of {', '.join(cls.CARDINALITIES)}"
                )

        if not relation["cols"]:
            result.add_warning(f"Relation '{relation_id}' has no column mapping; it will be dropped")

        return result
