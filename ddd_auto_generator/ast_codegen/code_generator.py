"""
Domain Artifact Code Generator

Strategy, Factory and Facade over the per-entity artifact synthesizers. Each
strategy builds the ``ast`` modules of one component for one table; the
facade renders them and keeps the built trees so the error catalog of every
entity can be verified against every reference emitted during the run.
"""

import ast
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple, Type

from ddd_auto_generator.ast_codegen.aggregate import generate_aggregate_ast, unimplemented_rules
from ddd_auto_generator.ast_codegen.commands import generate_commands_ast, generate_queries_ast
from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.ast_codegen.dtos import generate_dto_ast
from ddd_auto_generator.ast_codegen.entities import generate_entity_ast
from ddd_auto_generator.ast_codegen.events import generate_events_ast
from ddd_auto_generator.ast_codegen.exceptions import (
    collect_error_references,
    generate_domain_exception_ast,
    generate_exception_message_ast,
)
from ddd_auto_generator.ast_codegen.identifiers import generate_identifier_ast
from ddd_auto_generator.ast_codegen.permissions import generate_permissions_ast
from ddd_auto_generator.ast_codegen.persistence import generate_mapping_ast
from ddd_auto_generator.ast_codegen.projection_keys import (
    generate_projection_keys_ast,
    projection_keys_parts,
    uses_projection_keys,
)
from ddd_auto_generator.ast_codegen.value_objects import (
    generate_domain_helpers_ast,
    generate_value_object_ast,
    value_object_parts,
)
from ddd_auto_generator.codegen_utils import render_module
from ddd_auto_generator.constants import DefaultConfig, OutputLayout
from ddd_auto_generator.domain.models import GeneratedArtifact
from ddd_auto_generator.domain.naming import NamingConventions
from ddd_auto_generator.exceptions import raise_code_generation_error
from ddd_auto_generator.validators import ValidationResult

logger = logging.getLogger(__name__)


BuiltModule = Tuple[Tuple[str, ...], ast.Module]


# ---- Design Patterns ----

# Strategy Pattern for the artifact components of one entity
class ArtifactStrategy(ABC):
    """Abstract Strategy for one artifact component"""

    component: str = ""
    # Also generated for tables other aggregates hold by value but that get no aggregate
    supports_referenced_targets: bool = False

    def applies(self, ctx: GenerationContext, table_name: str) -> bool:
        """Whether the component exists at all for the table."""
        return True

    @abstractmethod
    def build(self, ctx: GenerationContext, table_name: str) -> List[BuiltModule]:
        """Build the modules of the component, each with its output path parts."""


class SingleModuleStrategy(ArtifactStrategy):
    """A component rendered as exactly one module per entity."""

    layout: Tuple[str, ...] = ()
    suffix: str = ""

    def parts(self, ctx: GenerationContext, table_name: str) -> Tuple[str, ...]:
        return ctx.artifact_parts(table_name, self.layout, f"{NamingConventions.module_name(table_name)}_{self.suffix}")

    def build(self, ctx: GenerationContext, table_name: str) -> List[BuiltModule]:
        return [(self.parts(ctx, table_name), self.build_module(ctx, table_name))]

    @abstractmethod
    def build_module(self, ctx: GenerationContext, table_name: str) -> ast.Module:
        pass


# Concrete Strategy implementations
class EntityArtifacts(SingleModuleStrategy):
    """Props TypedDict and enums"""
    component = "entity"
    layout = OutputLayout.ENTITIES
    suffix = "entity"

    def build_module(self, ctx, table_name):
        return generate_entity_ast(ctx, table_name)


class IdentifierArtifacts(SingleModuleStrategy):
    """Identity value object"""
    component = "identifier"
    layout = OutputLayout.VALUE_OBJECTS
    suffix = "identifier"

    def build_module(self, ctx, table_name):
        return generate_identifier_ast(ctx, table_name)


class DomainHelperArtifacts(SingleModuleStrategy):
    """Equality, normalization and validation helpers"""
    component = "domain_helpers"
    layout = OutputLayout.VALUE_OBJECTS
    suffix = "domain"
    supports_referenced_targets = True

    def build_module(self, ctx, table_name):
        return generate_domain_helpers_ast(ctx, table_name)


class ValueObjectArtifacts(ArtifactStrategy):
    """One value object per (referenced table, shape) owned by the entity"""
    component = "value_objects"

    def applies(self, ctx, table_name):
        return bool(ctx.value_object_relationships(table_name))

    def build(self, ctx, table_name):
        return [
            (value_object_parts(ctx, table_name, rel), generate_value_object_ast(ctx, rel))
            for rel in ctx.value_object_relationships(table_name)
        ]


class ProjectionKeyArtifacts(ArtifactStrategy):
    """Redis and event-stream key value object"""
    component = "projection_keys"

    def applies(self, ctx, table_name):
        return uses_projection_keys(ctx, table_name)

    def build(self, ctx, table_name):
        return [(projection_keys_parts(ctx, table_name), generate_projection_keys_ast(ctx, table_name))]


class EventArtifacts(SingleModuleStrategy):
    """Domain events"""
    component = "events"
    layout = OutputLayout.EVENTS
    suffix = "events"

    def build_module(self, ctx, table_name):
        return generate_events_ast(ctx, table_name)


class AggregateArtifacts(SingleModuleStrategy):
    """Event-sourced aggregate"""
    component = "aggregate"
    layout = OutputLayout.AGGREGATES
    suffix = "aggregate"

    def build_module(self, ctx, table_name):
        rules = unimplemented_rules(ctx.aggregate_plan(table_name))
        if rules and ctx.unimplemented_rules == "block":
            raise_code_generation_error(
                f"Unimplemented business rules: {', '.join(rules)}",
                component=self.component,
                table=table_name,
                suggestions=["Set unimplemented_rules to 'defer' to flag these rules at runtime instead"],
            )
        return generate_aggregate_ast(ctx, table_name)


class DomainExceptionArtifacts(SingleModuleStrategy):
    """Entity domain exception class"""
    component = "domain_exception"
    layout = OutputLayout.EXCEPTIONS
    suffix = "domain_exception"
    supports_referenced_targets = True

    def build_module(self, ctx, table_name):
        return generate_domain_exception_ast(ctx, table_name)


class MappingArtifacts(SingleModuleStrategy):
    """Persistence mapping"""
    component = "mapping"
    layout = OutputLayout.PERSISTENCE
    suffix = "mapping"

    def build_module(self, ctx, table_name):
        return generate_mapping_ast(ctx, table_name)


class DtoArtifacts(SingleModuleStrategy):
    """Pydantic request and response models"""
    component = "dtos"
    layout = OutputLayout.DTOS
    suffix = "dto"

    def build_module(self, ctx, table_name):
        return generate_dto_ast(ctx, table_name)


class CommandArtifacts(SingleModuleStrategy):
    component = "commands"
    layout = OutputLayout.COMMANDS
    suffix = "commands"

    def build_module(self, ctx, table_name):
        return generate_commands_ast(ctx, table_name)


class QueryArtifacts(SingleModuleStrategy):
    component = "queries"
    layout = OutputLayout.QUERIES
    suffix = "queries"

    def build_module(self, ctx, table_name):
        return generate_queries_ast(ctx, table_name)


class PermissionArtifacts(SingleModuleStrategy):
    component = "permissions"
    layout = OutputLayout.PERMISSIONS
    suffix = "permissions"

    def applies(self, ctx, table_name):
        return ctx.config(table_name).permissions.enabled

    def build_module(self, ctx, table_name):
        return generate_permissions_ast(ctx, table_name)


# Factory Pattern for creating strategies
class ArtifactStrategyFactory:
    """Factory for creating artifact strategies"""

    _registry: Dict[str, Type[ArtifactStrategy]] = {
        strategy.component: strategy
        for strategy in (
            EntityArtifacts,
            IdentifierArtifacts,
            DomainHelperArtifacts,
            ValueObjectArtifacts,
            ProjectionKeyArtifacts,
            EventArtifacts,
            AggregateArtifacts,
            DomainExceptionArtifacts,
            MappingArtifacts,
            DtoArtifacts,
            CommandArtifacts,
            QueryArtifacts,
            PermissionArtifacts,
        )
    }

    @classmethod
    def register(cls, name: str, strategy_class: Type[ArtifactStrategy]) -> None:
        """Register a new artifact strategy"""
        cls._registry[name] = strategy_class

    @classmethod
    def components(cls) -> List[str]:
        """Registered components in generation order."""
        return list(cls._registry)

    @classmethod
    def supporting_components(cls) -> List[str]:
        """Components generated for a referenced table without an aggregate of its own."""
        return [name for name, strategy in cls._registry.items() if strategy.supports_referenced_targets]

    @classmethod
    def create(cls, name: str) -> ArtifactStrategy:
        """Create an artifact strategy instance by name"""
        strategy_class = cls._registry.get(name)
        if not strategy_class:
            raise ValueError(f"Unknown artifact component: {name}")
        return strategy_class()


# Facade Pattern for simplified interface
class CodeGenerator:
    """
    Facade for the artifact generation system.

    Components are generated table by table; the error catalog of each table
    is rendered by :meth:`generate_catalog` once every table is done, because
    helpers generated for one entity may reference the catalog of another.
    """

    def __init__(
        self,
        ctx: GenerationContext,
        format_code: bool = DefaultConfig.FORMAT_CODE,
        line_length: int = DefaultConfig.LINE_LENGTH,
    ):
        self.ctx = ctx
        self.format_code = format_code
        self.line_length = line_length
        self.modules: Dict[Tuple[str, ...], ast.Module] = {}

    def _artifact(self, parts: Tuple[str, ...], module: ast.Module, component: str,
                  table_name: str) -> GeneratedArtifact:
        label = "/".join(parts)
        code = render_module(module, self.format_code, self.line_length, label)
        logger.debug(f"Generated {component} artifact: {label}")
        return GeneratedArtifact(parts=parts, code=code, component=component, table_name=table_name)

    def generate_component(self, component: str, table_name: str) -> List[GeneratedArtifact]:
        """Build and render one component of one table; empty when the component does not apply."""
        strategy = ArtifactStrategyFactory.create(component)
        if not strategy.applies(self.ctx, table_name):
            logger.debug(f"Component '{component}' does not apply to {table_name}")
            return []

        artifacts = []
        for parts, module in strategy.build(self.ctx, table_name):
            self.modules[parts] = module
            artifacts.append(self._artifact(parts, module, component, table_name))
        return artifacts

    def catalog_parts(self, table_name: str) -> Tuple[str, ...]:
        return self.ctx.artifact_parts(
            table_name, OutputLayout.EXCEPTIONS, f"{NamingConventions.module_name(table_name)}_exception_message"
        )

    def verify_catalog(self, table_name: str) -> ValidationResult:
        """Match the catalog of a table against the references in every module built so far."""
        references = collect_error_references(self.modules.values(), table_name)
        return self.ctx.catalog.verify(table_name, references)

    def generate_catalog(self, table_name: str) -> GeneratedArtifact:
        parts = self.catalog_parts(table_name)
        module = generate_exception_message_ast(self.ctx, table_name)
        self.modules[parts] = module
        return self._artifact(parts, module, "exception_message", table_name)

    def unimplemented_rules(self, table_name: str) -> List[str]:
        return unimplemented_rules(self.ctx.aggregate_plan(table_name))
