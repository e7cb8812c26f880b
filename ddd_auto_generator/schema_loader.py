"""
Schema document loading.

Failures here are top-level failures: a missing schema directory, a missing
schema file or a document that is not valid JSON/YAML aborts the whole run.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .constants import DefaultConfig, FileExtensions
from .exceptions import SchemaLoadError


logger = logging.getLogger(__name__)


@dataclass
class RawSchemaBundle:
    """The raw schema document and entity parameters of one schema identifier."""

    schema_id: str
    path: Path
    schema: Dict[str, Any]
    parameters: Dict[str, Any] = field(default_factory=dict)
    parameters_path: Optional[Path] = None


def resolve_schema_dir(schema_id: str, schemas_dir: str = DefaultConfig.SCHEMAS_DIR) -> Path:
    """
    Find the directory holding a schema.

    The identifier is tried first as a path, then as a directory name under
    ``schemas_dir``.
    """
    direct = Path(schema_id)
    if direct.is_dir():
        return direct
    candidate = Path(schemas_dir) / schema_id
    if candidate.is_dir():
        return candidate
    raise SchemaLoadError(
        f"Schema '{schema_id}' not found",
        schema_path=str(candidate),
        context={'schemas_dir': schemas_dir},
    )


def _find_first(directory: Path, names) -> Optional[Path]:
    return next((directory / name for name in names if (directory / name).is_file()), None)


def load_schema_document(schema_dir: Path) -> Dict[str, Any]:
    """Read ``schema.json`` (or ``schema.dmm``) from a schema directory."""
    schema_file = _find_first(schema_dir, DefaultConfig.SCHEMA_FILE_NAMES)
    if schema_file is None:
        raise SchemaLoadError(
            f"No schema file found in {schema_dir}",
            schema_path=str(schema_dir),
            context={'expected': ", ".join(DefaultConfig.SCHEMA_FILE_NAMES)},
        )

    try:
        with open(schema_file, "r", encoding="utf-8") as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise SchemaLoadError(f"Schema file is not valid JSON: {e}", schema_path=str(schema_file)) from e

    if not isinstance(document, dict):
        raise SchemaLoadError("Schema document must be a JSON object", schema_path=str(schema_file))

    logger.debug(f"Loaded schema document from {schema_file}")
    return document


def load_parameters(schema_dir: Path) -> Dict[str, Any]:
    """Read the optional per-entity parameters document; missing means empty."""
    parameters_file = _find_first(schema_dir, DefaultConfig.PARAMETERS_FILE_NAMES)
    if parameters_file is None:
        logger.debug(f"No parameters file in {schema_dir}, using defaults")
        return {}

    try:
        with open(parameters_file, "r", encoding="utf-8") as f:
            if parameters_file.suffix == FileExtensions.JSON:
                parameters = json.load(f)
            else:
                parameters = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaLoadError(
            f"Parameters file could not be parsed: {e}", schema_path=str(parameters_file)
        ) from e

    if parameters is None:
        return {}
    if not isinstance(parameters, dict):
        raise SchemaLoadError("Parameters document must be a mapping", schema_path=str(parameters_file))

    logger.debug(f"Loaded entity parameters from {parameters_file}")
    return parameters


def load_schema(schema_id: str, schemas_dir: str = DefaultConfig.SCHEMAS_DIR) -> RawSchemaBundle:
    """Load the schema document and entity parameters for a schema identifier."""
    schema_dir = resolve_schema_dir(schema_id, schemas_dir)
    return RawSchemaBundle(
        schema_id=Path(schema_id).name,
        path=schema_dir,
        schema=load_schema_document(schema_dir),
        parameters=load_parameters(schema_dir),
        parameters_path=_find_first(schema_dir, DefaultConfig.PARAMETERS_FILE_NAMES),
    )
