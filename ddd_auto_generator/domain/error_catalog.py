"""
Error Catalog Builder.

Every synthesizer that emits a raise of a domain exception registers the
matching catalog entry at the same time, so the catalog of an entity holds
exactly the rules its generated code references.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..constants import ErrorStatus
from ..validators import ValidationResult
from .naming import NamingConventions, to_constant_case, to_sentence_case


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorDefinition:
    """One catalog entry: the five-field error contract plus the domain flag."""

    key: str
    message: str
    description: str
    code: str
    exception: str
    status_code: int
    domain: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ErrorCatalog:
    """
    Per-entity accumulation of error definitions.

    Registration is idempotent per (entity, key): registering the same key
    again replaces the entry, and synthesizers build identical values for
    the same key.
    """

    def __init__(self):
        self._entries: Dict[str, Dict[str, ErrorDefinition]] = {}

    def register(
        self,
        entity: str,
        key: str,
        message: str,
        description: str,
        status_code: int = ErrorStatus.BAD_REQUEST,
        code: Optional[str] = None,
    ) -> str:
        """
        Register a rule for an entity and return its key.

        Args:
            entity: Table name owning the rule
            key: Snake case rule name, e.g. ``duplicate_tag``
            message: Short human message
            description: Longer description
            status_code: HTTP-style status classification
            code: Machine code; defaults to ``<RULE>_<TABLE>``
        """
        definition = ErrorDefinition(
            key=key,
            message=message,
            description=description,
            code=code or f"{to_constant_case(key)}_{to_constant_case(entity)}",
            exception=NamingConventions.exception_class(entity),
            status_code=status_code,
        )
        entries = self._entries.setdefault(entity, {})
        previous = entries.get(key)
        if previous is not None and previous != definition:
            logger.debug(f"Error catalog entry '{entity}.{key}' re-registered with a different definition")
        entries[key] = definition
        return key

    def register_required(self, entity: str, column_name: str, kind: str = "value") -> str:
        """Register the field-required rule for a column and return its key."""
        class_name = NamingConventions.class_name(entity)
        sentence = to_sentence_case(column_name)
        if kind == "string":
            message = f"{sentence} is required and cannot be empty"
            description = f"The {column_name} field is required for {class_name} and must be a non-empty string"
        elif kind in ("number", "boolean"):
            message = f"{sentence} is required"
            description = f"The {column_name} field is required for {class_name} and must be a valid {kind}"
        else:
            message = f"{sentence} is required"
            description = f"The {column_name} field is required for {class_name}"

        return self.register(
            entity,
            f"{NamingConventions.module_name(column_name)}_required",
            message,
            description,
            code=f"INVALID_{to_constant_case(column_name)}_VALUE_{to_constant_case(entity)}",
        )

    def get(self, entity: str, key: str) -> Optional[ErrorDefinition]:
        return self._entries.get(entity, {}).get(key)

    def entries(self, entity: str) -> List[ErrorDefinition]:
        """Entries of one entity, sorted by key."""
        return [self._entries[entity][key] for key in sorted(self._entries.get(entity, {}))]

    def keys(self, entity: str) -> List[str]:
        return sorted(self._entries.get(entity, {}))

    def entities(self) -> List[str]:
        return sorted(self._entries)

    def verify(self, entity: str, references: Iterable[str]) -> ValidationResult:
        """
        Check that the references emitted for an entity match its catalog.

        Every reference must resolve to an entry (no dangling reference) and
        every entry must be referenced (no orphan entry).
        """
        result = ValidationResult(True, [], [])
        referenced = set(references)
        registered = set(self._entries.get(entity, {}))

        for key in sorted(referenced - registered):
            result.add_error(f"Dangling error reference '{key}' in {entity}")
        for key in sorted(registered - referenced):
            result.add_error(f"Orphan error catalog entry '{key}' in {entity}")
        return result

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {
            entity: {definition.key: definition.to_dict() for definition in self.entries(entity)}
            for entity in self.entities()
        }
