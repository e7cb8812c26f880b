"""
Relationship Resolver.

Computes, once per schema, how every relationship is shaped in domain-facing
artifacts (representation mode) and in the persistence mapping (persistence
mode). Synthesizers only ever read these decisions; none of them classifies a
relationship on its own.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .models import (
    CollectionShape,
    ColumnInfo,
    PersistenceMode,
    RelationshipInfo,
    RepresentationMode,
    ResolvedRelationship,
    SchemaInfo,
    TableInfo,
)


logger = logging.getLogger(__name__)


def representation_mode(relationship: RelationshipInfo, child_column: ColumnInfo) -> RepresentationMode:
    """
    Domain shape of a relationship.

    A pure function of the cardinality pair and the referencing column:
    many x many with the empty-structure marker is a keyed map, other
    many x many pairs are ordered lists, and every other pair is a single
    value, embedded when the referencing column is structured.
    """
    if relationship.is_many_to_many:
        if child_column.collection_shape is CollectionShape.MAP:
            return RepresentationMode.MAP
        return RepresentationMode.LIST
    if child_column.is_structured:
        return RepresentationMode.EMBEDDED
    return RepresentationMode.REFERENCE


def persistence_mode(mode: RepresentationMode, join_valid: bool) -> PersistenceMode:
    """Persistence shape of a relationship given its domain shape and join validity."""
    if mode.is_collection:
        return PersistenceMode.JOIN if join_valid else PersistenceMode.INLINE
    if mode is RepresentationMode.EMBEDDED:
        return PersistenceMode.EMBEDDED
    return PersistenceMode.COLUMN


class RelationshipResolver:
    """
    Resolves the relationship set of every table in a normalized schema.

    Invalid relationships are dropped once, when the valid set is first
    computed: a missing endpoint table or column is logged at error level,
    a child table without a primary key is dropped silently.
    """

    def __init__(self, schema: SchemaInfo):
        self.schema = schema
        self._tables: Dict[str, TableInfo] = {table.name: table for table in schema.tables}
        self._valid: Optional[List[RelationshipInfo]] = None
        self._cache: Dict[str, List[ResolvedRelationship]] = {}
        self.dropped: List[Tuple[RelationshipInfo, str]] = []

    # --- Validity -----------------------------------------------------------

    def valid_relationships(self) -> List[RelationshipInfo]:
        """Deduplicated relationships whose endpoints all exist, in schema order."""
        if self._valid is not None:
            return self._valid

        seen = set()
        valid = []
        for relationship in self.schema.relations:
            if relationship.key in seen:
                logger.debug(f"Ignoring duplicate relationship {relationship.name}")
                continue
            seen.add(relationship.key)

            reason = self._drop_reason(relationship)
            if reason is None:
                valid.append(relationship)
                continue

            self.dropped.append((relationship, reason))
            if reason != "child table has no primary key":
                logger.error(f"Dropping relationship {relationship.name}: {reason}")

        self._valid = valid
        return valid

    def _drop_reason(self, relationship: RelationshipInfo) -> Optional[str]:
        parent = self._tables.get(relationship.parent_table)
        child = self._tables.get(relationship.child_table)
        if parent is None:
            return f"parent table '{relationship.parent_table}' does not exist"
        if child is None:
            return f"child table '{relationship.child_table}' does not exist"
        if not child.primary_key_columns:
            return "child table has no primary key"
        if parent.get_column(relationship.parent_column) is None:
            return f"column '{relationship.parent_column}' does not exist in '{parent.name}'"
        if child.get_column(relationship.child_column) is None:
            return f"column '{relationship.child_column}' does not exist in '{child.name}'"
        return None

    # --- Join validity ------------------------------------------------------

    def supports_relational(self, table_name: str) -> bool:
        return self.schema.config_for(table_name).supports_relational

    def join_valid(self, parent_table: str, child_table: str) -> bool:
        """Both endpoints are served by relational storage for reads or writes."""
        return self.supports_relational(parent_table) and self.supports_relational(child_table)

    # --- Resolution ---------------------------------------------------------

    def resolve(self, relationship: RelationshipInfo, table_name: str) -> ResolvedRelationship:
        """Resolve one relationship as seen from ``table_name``."""
        parent_column = self._tables[relationship.parent_table].get_column(relationship.parent_column)
        child_column = self._tables[relationship.child_table].get_column(relationship.child_column)
        mode = representation_mode(relationship, child_column)
        join_valid = self.join_valid(relationship.parent_table, relationship.child_table)

        return ResolvedRelationship(
            relationship=relationship,
            is_parent=relationship.parent_table == table_name,
            is_child=relationship.child_table == table_name,
            representation_mode=mode,
            persistence_mode=persistence_mode(mode, join_valid),
            join_valid=join_valid,
            parent_column_info=parent_column,
            child_column_info=child_column,
        )

    def resolve_table(self, table_name: str) -> List[ResolvedRelationship]:
        """Every valid relationship touching a table, enriched from its point of view."""
        if table_name not in self._cache:
            self._cache[table_name] = [
                self.resolve(relationship, table_name)
                for relationship in self.valid_relationships()
                if table_name in (relationship.parent_table, relationship.child_table)
            ]
        return self._cache[table_name]

    # --- Views used by the synthesizers ---------------------------------------

    def owned_relationships(self, table_name: str) -> List[ResolvedRelationship]:
        """Relationships whose referencing column lives on this table."""
        return [rel for rel in self.resolve_table(table_name) if rel.is_child]

    def collection_relationships(self, table_name: str) -> List[ResolvedRelationship]:
        return [rel for rel in self.owned_relationships(table_name) if rel.is_collection]

    def relationship_for_column(self, table_name: str, column_name: str) -> Optional[ResolvedRelationship]:
        return next(
            (rel for rel in self.owned_relationships(table_name) if rel.child_column == column_name),
            None,
        )

    def unique_targets(self, table_name: str) -> List[ResolvedRelationship]:
        """Owned relationships deduplicated by referenced table."""
        seen = set()
        targets = []
        for rel in self.owned_relationships(table_name):
            if rel.parent_table not in seen:
                seen.add(rel.parent_table)
                targets.append(rel)
        return targets

    def referenced_modes(self, table_name: str) -> List[RepresentationMode]:
        """
        Collection modes under which other tables reference this one.

        Drives the list/map helper families of the referenced entity: each
        family exists once per target regardless of how many columns point
        at it.
        """
        modes = {
            rel.representation_mode
            for rel in self.resolve_table(table_name)
            if rel.is_parent and rel.is_collection
        }
        return sorted(modes, key=lambda mode: mode.value)
