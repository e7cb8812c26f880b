import logging
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from ddd_auto_generator.constants import DefaultConfig


logger = logging.getLogger(__name__)


# --- Pydantic Models for Configuration Schema ---


class ToolConfigSchema(BaseModel):
    """Pydantic schema defining the expected structure and types for the configuration."""

    schemas_dir: str = Field(
        DefaultConfig.SCHEMAS_DIR,
        min_length=1,
        description="Directory holding one sub-directory per schema identifier.",
    )
    output_dir: str = Field(
        DefaultConfig.OUTPUT_DIR,
        min_length=1,
        description="Directory for generated artifacts.",
    )
    force: bool = Field(
        default=False,
        description="Overwrite files that already exist in the output directory.",
    )
    dry_run: bool = Field(
        default=False,
        description="Render every artifact without writing anything.",
    )
    format_code: bool = Field(
        default=DefaultConfig.FORMAT_CODE,
        description="Format generated Python code with Black.",
    )
    line_length: int = Field(
        default=DefaultConfig.LINE_LENGTH,
        ge=40,
        le=320,
        description="Black line length of generated code.",
    )
    write_index_files: bool = Field(
        default=DefaultConfig.WRITE_INDEX_FILES,
        description="Write __init__.py files re-exporting the public names of each directory.",
    )
    include_tables: Optional[List[str]] = Field(
        default=None,
        description="Optional list of specific table names (strings) to include.",
    )
    exclude_tables: Optional[List[str]] = Field(
        default=None, description="Optional list of table names (strings) to exclude."
    )
    unimplemented_rules: Literal["defer", "block"] = Field(
        default=DefaultConfig.UNIMPLEMENTED_RULES,
        description="'defer' flags unimplemented business rules at runtime, 'block' fails the table.",
    )
    license_header: Optional[str] = Field(
        default=None,
        description="Text prepended, as comments, to every generated Python file.",
    )

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access for compatibility with existing code."""
        return getattr(self, key)

    def get(self, key: str, default: Any = None) -> Any:
        """Allow dict.get() style access for compatibility with existing code."""
        return getattr(self, key, default)

    # --- Custom Field Validators using @field_validator ---

    @field_validator("include_tables", "exclude_tables", mode="before")
    @classmethod
    def check_table_names_list(cls, v: Optional[List[Any]]) -> Optional[List[str]]:
        """Ensure items in table lists are non-empty strings."""
        if v is None:
            return None
        if not isinstance(v, list):
            raise TypeError("include_tables/exclude_tables must be a list.")
        processed_list = []
        for index, item in enumerate(v):
            if not isinstance(item, str):
                raise TypeError(
                    f"Item at index {index} must be a string, found: {type(item).__name__}"
                )
            stripped_item = item.strip()
            if not stripped_item:
                raise ValueError(
                    f"Item at index {index} cannot be empty or just whitespace."
                )
            processed_list.append(stripped_item)
        return processed_list

    @field_validator("license_header", mode="before")
    @classmethod
    def blank_header_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # --- Custom Model Validator using @model_validator ---

    @model_validator(mode="after")
    def check_table_filters(self) -> "ToolConfigSchema":
        """Perform cross-field validation checks."""
        if self.include_tables and self.exclude_tables:
            overlap = sorted(set(self.include_tables) & set(self.exclude_tables))
            if overlap:
                raise ValueError(
                    f"Tables cannot be both included and excluded: {', '.join(overlap)}"
                )
        return self

    def selects_table(self, table_name: str) -> bool:
        """Whether the include/exclude filters keep a table."""
        if self.include_tables is not None and table_name not in self.include_tables:
            return False
        return not (self.exclude_tables and table_name in self.exclude_tables)

    model_config = ConfigDict(
        extra="ignore",  # Allow and ignore extra fields from input dict
    )


# --- Validation Function ---
def validate_and_parse_config(config_dict: Dict[str, Any]) -> ToolConfigSchema:
    """
    Validates a raw configuration dictionary against the ToolConfigSchema.
    Exits with error messages if validation fails.
    """
    try:
        validated_config = ToolConfigSchema.model_validate(config_dict)
        logger.debug("Configuration dictionary parsed and validated successfully against schema.")
        return validated_config
    except ValidationError as e:
        logger.critical("Configuration validation failed! Please check your config file or arguments.")
        print("\n--- Configuration Errors ---", file=sys.stderr)
        for error in e.errors():
            loc_parts = [str(loc_item) for loc_item in error.get("loc", ())]
            loc_str = " -> ".join(loc_parts) if loc_parts else "Model Level"
            msg = error.get("msg", "Unknown validation error")

            print(f"  - Location: '{loc_str}'", file=sys.stderr)
            print(f"    Error:    {msg}", file=sys.stderr)

            if "unimplemented_rules" in loc_parts:
                print("    Hint:     Use 'defer' or 'block'.", file=sys.stderr)

        print("----------------------------", file=sys.stderr)
        sys.exit(1)


def load_config(config_path: Optional[str], cli_args: Namespace) -> ToolConfigSchema:
    """
    Loads configuration from YAML file, merges with CLI arguments,
    validates the result, and returns a validated Pydantic model instance.
    Exits with error messages if validation fails.
    """
    raw_config: Dict[str, Any] = {}

    # 1. Load from YAML file if path is provided
    if config_path:
        config_file = Path(config_path)
        if config_file.is_file():
            try:
                with open(config_file, "r", encoding="utf-8") as f:
                    yaml_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                logger.error(f"Error parsing YAML file {config_path}: {e}")
                logger.warning("Proceeding with defaults and CLI arguments only.")
                yaml_config = None
            if yaml_config and isinstance(yaml_config, dict):
                raw_config.update(yaml_config)
                logger.debug(f"Loaded configuration from {config_path}")
            elif yaml_config:
                logger.warning(
                    f"Content in config file {config_path} is not a dictionary. Ignoring file content."
                )
        else:
            logger.warning(f"Config file not found at {config_path}. Using defaults and CLI arguments.")

    # 2. Override with CLI arguments (only those explicitly provided)
    overridden_keys = set()
    for key, value in vars(cli_args).items():
        if value is not None and key in ToolConfigSchema.model_fields:
            raw_config[key] = value
            overridden_keys.add(key)
    if overridden_keys:
        logger.debug(f"Overridden config keys from CLI arguments: {sorted(overridden_keys)}")

    # 3. Validate
    logger.info("Validating final configuration...")
    validated_config = validate_and_parse_config(raw_config)

    # 4. Post-validation adjustments
    validated_config.output_dir = str(Path(validated_config.output_dir).resolve())

    logger.info("Configuration loaded and validated successfully.")
    return validated_config
