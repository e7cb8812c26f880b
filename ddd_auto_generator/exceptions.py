"""
Custom exception hierarchy for the domain artifact generator.

Every error carries context about where it happened and a short list of
recovery suggestions, so a failed run tells the user what to look at.
"""

from typing import Dict, Any, Optional, List


class DomainGeneratorError(Exception):
    """
    Base exception for all generator errors.

    Provides rich context and error recovery guidance.
    """

    default_suggestions: List[str] = []
    default_error_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        error_code: Optional[str] = None
    ):
        """
        Initialize the exception with context and recovery suggestions.

        Args:
            message: Human-readable error message
            context: Additional context about where/why the error occurred
            suggestions: List of potential solutions or next steps
            error_code: Unique error code for programmatic handling
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or list(self.default_suggestions)
        self.error_code = error_code or self.default_error_code

    def __str__(self) -> str:
        """Return formatted error message with context."""
        lines = [super().__str__()]

        if self.error_code:
            lines.append(f"Error Code: {self.error_code}")

        if self.context:
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestions:
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  • {suggestion}")

        return "\n".join(lines)


class ConfigurationError(DomainGeneratorError):
    """Raised when the tool or entity configuration is invalid or missing."""

    default_error_code = "CONFIG_ERROR"
    default_suggestions = [
        "Check the configuration file syntax",
        "Verify all required fields are present",
        "Compare the per-table parameters with the documented defaults",
    ]

    def __init__(self, message: str, config_file: str = None, **kwargs):
        context = kwargs.pop('context', {})
        if config_file:
            context['config_file'] = config_file
        super().__init__(message, context=context, **kwargs)


class SchemaLoadError(DomainGeneratorError):
    """Raised when the schema document cannot be found or parsed."""

    default_error_code = "SCHEMA_LOAD_ERROR"
    default_suggestions = [
        "Check that the schema identifier points to an existing directory",
        "Verify the directory contains schema.json or schema.dmm",
        "Validate the schema file is well-formed JSON",
    ]

    def __init__(self, message: str, schema_path: str = None, **kwargs):
        context = kwargs.pop('context', {})
        if schema_path:
            context['schema_path'] = schema_path
        super().__init__(message, context=context, **kwargs)


class CodeGenerationError(DomainGeneratorError):
    """Raised when AST code generation fails."""

    default_error_code = "CODE_GENERATION_ERROR"
    default_suggestions = [
        "Check the table schema for unsupported patterns",
        "Try generating one table at a time with include_tables in the configuration",
        "Check for naming conflicts or reserved words",
    ]

    def __init__(self, message: str, component: str = None, table: str = None, **kwargs):
        context = kwargs.pop('context', {})
        if component:
            context['component'] = component  # e.g. 'aggregate', 'value_objects'
        if table:
            context['table'] = table
        super().__init__(message, context=context, **kwargs)


class ArtifactWriteError(DomainGeneratorError):
    """Raised when an artifact cannot be written to disk."""

    default_error_code = "ARTIFACT_WRITE_ERROR"
    default_suggestions = [
        "Check the output directory is writable",
        "Check there is no file where a directory is expected",
    ]

    def __init__(self, message: str, path: str = None, **kwargs):
        context = kwargs.pop('context', {})
        if path:
            context['path'] = path
        super().__init__(message, context=context, **kwargs)


def raise_code_generation_error(message: str, component: str = None, table: str = None, **kwargs):
    """Convenience function to raise code generation errors."""
    raise CodeGenerationError(message, component=component, table=table, **kwargs)
