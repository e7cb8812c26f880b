"""
Domain AST-based Code Generation Main Module

This module drives a generation run: it loads and normalizes the schema,
resolves relationships, runs every artifact component for every eligible
table, renders the error catalogs last, writes the tree and aggregates the
index files.

Failures follow two tiers. A failing step (one component of one table, the
shared templates, the index files) is caught by :func:`handle_step`, logged
and recorded in the report, and the run continues. Failures to load or
normalize the schema propagate to the caller.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from jinja2 import Environment

from ddd_auto_generator.ast_codegen.code_generator import ArtifactStrategyFactory, CodeGenerator
from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.codegen import generate_shared_artifacts, setup_jinja_env
from ddd_auto_generator.colored_logging import log_highlight, log_progress, log_section, log_success
from ddd_auto_generator.config import ToolConfigSchema
from ddd_auto_generator.constants import UnexpectedError
from ddd_auto_generator.domain.classification import classify_tables
from ddd_auto_generator.domain.models import GenerationReport, SchemaInfo
from ddd_auto_generator.normalizer import normalize_schema
from ddd_auto_generator.schema_loader import load_schema
from ddd_auto_generator.writer import ArtifactWriter


logger = logging.getLogger(__name__)


def unexpected_error(step: str, error: Exception) -> Dict[str, Any]:
    """The five-field error record of a failed step."""
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    return {
        "message": f"{step}: {message}",
        "description": UnexpectedError.DESCRIPTION,
        "code": UnexpectedError.CODE,
        "exception": UnexpectedError.EXCEPTION,
        "status_code": UnexpectedError.STATUS_CODE,
    }


def handle_step(report: GenerationReport, step: str, func: Callable[..., Any], *args, **kwargs) -> Optional[Any]:
    """
    Run one generation step, recording a failure instead of raising it.

    Returns the step's result, or None when it failed.
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        logger.error(f"Step '{step}' failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
        report.errors[step] = unexpected_error(step, e)
        return None


def _run_components(generator: CodeGenerator, writer: ArtifactWriter, report: GenerationReport,
                    table_name: str, components: List[str]) -> None:
    excluded = generator.ctx.config(table_name).excluded
    for component in components:
        step = f"{table_name}.{component}"
        artifacts = handle_step(report, step, generator.generate_component, component, table_name)
        if artifacts:
            handle_step(report, f"{step}.write", writer.write_all, artifacts, excluded)


def generate_table(generator: CodeGenerator, writer: ArtifactWriter, report: GenerationReport,
                   table_name: str) -> None:
    """Run every component for one table; the catalog is left for :func:`generate_catalogs`."""
    log_progress(logger, f"Generating artifacts for {table_name}...")
    _run_components(generator, writer, report, table_name, ArtifactStrategyFactory.components())

    rules = handle_step(report, f"{table_name}.rules", generator.unimplemented_rules, table_name)
    if rules:
        report.unimplemented_rules[table_name] = rules
        logger.warning(f"{table_name}: unimplemented business rules flagged: {', '.join(rules)}")


def generate_referenced_table(generator: CodeGenerator, writer: ArtifactWriter, report: GenerationReport,
                              table_name: str) -> None:
    """
    Generate the helpers and exceptions of a table that gets no aggregate.

    Aggregates holding the table as a list, map or embedded value import its
    helper module and raise into its catalog, so those exist even when every
    operation of the table itself is cancelled.
    """
    log_progress(logger, f"Generating value helpers for referenced table {table_name}...")
    _run_components(generator, writer, report, table_name, ArtifactStrategyFactory.supporting_components())


def generate_catalogs(generator: CodeGenerator, writer: ArtifactWriter, report: GenerationReport,
                      table_names: List[str]) -> None:
    """
    Verify and render the error catalog of every generated table.

    Runs after all tables so references emitted by helpers of one entity into
    the catalog of another are seen. Mismatches are recorded, not fatal.
    """
    for table_name in table_names:
        step = f"{table_name}.exception_message"
        result = generator.verify_catalog(table_name)
        for error in result.errors:
            logger.error(error)
        if not result.is_valid:
            report.errors[f"{step}.verify"] = unexpected_error(step, ValueError("; ".join(result.errors)))

        artifact = handle_step(report, step, generator.generate_catalog, table_name)
        if artifact is not None:
            handle_step(report, f"{step}.write", writer.write, artifact, generator.ctx.config(table_name).excluded)


def generate_domain_artifacts(
    schema: SchemaInfo,
    config: ToolConfigSchema,
    env: Optional[Environment] = None,
) -> GenerationReport:
    """
    Generate and write every artifact of a normalized schema.

    Args:
        schema: The normalized schema
        config: Validated tool configuration
        env: Jinja2 environment for the shared templates; created when omitted

    Returns:
        The report of the run. Per-step failures are in ``report.errors``.
    """
    report = GenerationReport()
    ctx = GenerationContext.from_schema(schema, unimplemented_rules=config.unimplemented_rules)
    generator = CodeGenerator(ctx, format_code=config.format_code, line_length=config.line_length)
    writer = ArtifactWriter(
        config.output_dir,
        schema.service.module,
        force=config.force,
        dry_run=config.dry_run,
        license_header=config.license_header,
        excluded=schema.excluded,
        report=report,
        format_code=config.format_code,
        line_length=config.line_length,
    )

    log_section(logger, "Shared Infrastructure")
    shared = handle_step(
        report, "shared", generate_shared_artifacts,
        env or setup_jinja_env(), schema, config.format_code, config.line_length,
    )
    if shared:
        handle_step(report, "shared.write", writer.write_all, shared)

    log_section(logger, "Entity Artifacts")
    selected = [table for table in schema.tables if config.selects_table(table.name)]
    classifications = classify_tables(selected, schema.entity_configs)
    generated = []
    for table in selected:
        classification = classifications[table.name]
        if not classification.is_eligible:
            report.skipped_tables[table.name] = classification.value
            if ctx.is_referenced_target(table.name):
                generate_referenced_table(generator, writer, report, table.name)
                generated.append(table.name)
            continue
        generate_table(generator, writer, report, table.name)
        generated.append(table.name)

    log_section(logger, "Error Catalogs")
    generate_catalogs(generator, writer, report, generated)
    report.error_catalog = ctx.catalog.to_dict()

    if config.write_index_files:
        log_progress(logger, "Aggregating index files...")
        handle_step(report, "index", writer.write_index_files)

    log_summary(report)
    return report


def log_summary(report: GenerationReport) -> None:
    log_section(logger, "Summary")
    log_highlight(logger, f"Written: {len(report.written)}, unchanged: {len(report.unchanged)}, "
                          f"excluded: {len(report.excluded)}")
    for table_name, reason in sorted(report.skipped_tables.items()):
        logger.info(f"Skipped table {table_name}: {reason}")
    for step, error in sorted(report.errors.items()):
        logger.error(f"{step}: {error['message']}")
    if report.has_errors:
        logger.warning(f"Generation finished with {len(report.errors)} failed steps")
    else:
        log_success(logger, "Generation finished without errors")


def generate_code_from_schema(schema_id: str, config: ToolConfigSchema) -> GenerationReport:
    """
    Load, normalize and generate one schema.

    Raises:
        SchemaLoadError: when the schema cannot be found, read or normalized
    """
    log_section(logger, "Schema Loading")
    log_progress(logger, f"Loading schema '{schema_id}' from {config.schemas_dir}...")
    bundle = load_schema(schema_id, config.schemas_dir)
    schema = normalize_schema(bundle.schema_id, bundle.schema, bundle.parameters)
    log_success(logger, f"Schema '{bundle.schema_id}' loaded: {len(schema.tables)} tables, "
                        f"{len(schema.relations)} relations")
    return generate_domain_artifacts(schema, config)
