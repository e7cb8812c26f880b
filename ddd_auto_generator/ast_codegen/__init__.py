"""
Domain AST Code Generator Module

This module provides the AST-based synthesizers that turn a normalized
schema into the domain, infrastructure and application artifacts of each
entity.
"""

from .context import AggregatePlan, GenerationContext
from .aggregate import generate_aggregate_code
from .commands import generate_commands_code, generate_queries_code
from .dtos import generate_dto_code
from .entities import generate_entity_code
from .events import generate_events_code
from .exceptions import generate_domain_exception_code, generate_exception_message_code
from .identifiers import generate_identifier_code
from .permissions import generate_permissions_code
from .persistence import generate_mapping_code
from .projection_keys import generate_projection_keys_code
from .value_objects import generate_domain_helpers_code, generate_value_object_code
from .code_generator import ArtifactStrategy, ArtifactStrategyFactory, CodeGenerator


__all__ = [
    'AggregatePlan',
    'GenerationContext',
    'generate_aggregate_code',
    'generate_commands_code',
    'generate_queries_code',
    'generate_dto_code',
    'generate_entity_code',
    'generate_events_code',
    'generate_domain_exception_code',
    'generate_exception_message_code',
    'generate_identifier_code',
    'generate_permissions_code',
    'generate_mapping_code',
    'generate_projection_keys_code',
    'generate_domain_helpers_code',
    'generate_value_object_code',
    'ArtifactStrategy',
    'ArtifactStrategyFactory',
    'CodeGenerator',
]
