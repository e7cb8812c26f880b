"""
Table eligibility classification.

One predicate decides whether a table receives aggregate, identifier and
value-object artifacts. Every synthesizer and the pipeline call it instead
of re-implementing their own skip logic. A table whose operations are all
cancelled is skipped but still has a scalar key, so other aggregates can
hold it by value.
"""

import logging
from typing import Dict, Iterable, List

from .entity_config import EntityConfig
from .models import TableClassification, TableInfo


logger = logging.getLogger(__name__)


def classify_table(table: TableInfo, config: EntityConfig) -> TableClassification:
    """
    Classify a table for aggregate synthesis.

    The checks run in a fixed order so a table with several problems always
    reports the same reason.
    """
    keys = table.primary_key_columns
    if table.has_structured_primary_key:
        return TableClassification.STRUCTURED_PRIMARY_KEY
    if not keys:
        return TableClassification.NO_PRIMARY_KEY
    if len(keys) > 1:
        return TableClassification.COMPOSITE_PRIMARY_KEY
    if config.all_operations_cancelled and not config.has_custom_apis:
        return TableClassification.ALL_OPERATIONS_CANCELLED
    return TableClassification.ELIGIBLE


def is_eligible(table: TableInfo, config: EntityConfig) -> bool:
    return classify_table(table, config).is_eligible


def classify_tables(tables: Iterable[TableInfo], configs: Dict[str, EntityConfig]) -> Dict[str, TableClassification]:
    """Classify every table, logging skips at warning level."""
    classifications = {}
    for table in tables:
        classification = classify_table(table, configs[table.name])
        if not classification.is_eligible:
            logger.warning(f"Skipping table {table.name}: {classification.value}")
        classifications[table.name] = classification
    return classifications


def eligible_tables(tables: Iterable[TableInfo], configs: Dict[str, EntityConfig]) -> List[TableInfo]:
    return [table for table in tables if is_eligible(table, configs[table.name])]
