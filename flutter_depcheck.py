#!/usr/bin/env python3
import json
import logging
import sys
from pathlib import Path

import click

from depcheck.checker import PolicyViolation, SKIP_VALIDATION_FLAG
from depcheck.config import CONFIG_FILENAME, ConfigError, load_config, thresholds_from_config
from depcheck.models import CHECK_ORDER, Dependency, ParseError, PluginResult, Status, Version
from depcheck.plugin import SKIP_DEPENDENCY_CHECKS_PROPERTY, GradleProject, apply_plugin
from depcheck.providers import default_providers

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
STATUS_COLORS = {Status.OK: "green", Status.WARN: "yellow", Status.FATAL: "red", Status.SKIPPED: None}


# --- Helper Functions ---
def _setup_logging(verbose: bool):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT, force=True)


def _parse_properties(values) -> dict:
    """Turns repeated -P KEY=VALUE options into a dict."""
    properties = {}
    for item in values:
        key, separator, value = item.partition('=')
        if not key.strip():
            raise click.BadParameter(f"Expected KEY=VALUE, got '{item}'", param_hint="-P/--property")
        properties[key.strip()] = value.strip() if separator else "true"
    return properties


def _load_thresholds(config_path, project_dir: Path):
    path = Path(config_path) if config_path else project_dir / CONFIG_FILENAME
    config = load_config(str(path))
    try:
        return config, thresholds_from_config(config)
    except ConfigError as e:
        click.secho(f"Error: invalid configuration in '{path}': {e}", fg="red", err=True)
        sys.exit(2)


def print_text_report(outcomes: list, result: PluginResult = None):
    click.echo("\n--- Dependency Version Report ---")
    if result is not None and result.checks_skipped:
        click.echo(f"Dependency checks skipped ('{SKIP_DEPENDENCY_CHECKS_PROPERTY}' is set).")
    for outcome in outcomes:
        version = str(outcome.version) if outcome.version is not None else "-"
        line = f"  {outcome.dependency.display_name:<8} {version:<10} "
        click.echo(line, nl=False)
        click.secho(outcome.status.value, fg=STATUS_COLORS[outcome.status])
        if outcome.status in (Status.WARN, Status.SKIPPED) and outcome.message:
            click.echo(f"    {outcome.message}")
    if result is not None:
        click.echo(f"  multiDexEnabled:     {str(result.multidex_enabled).lower()}")
        click.echo(f"  applicationName:     {result.manifest_placeholders.get('applicationName')}")
    click.echo("--- End Report ---")


def print_json_report(outcomes: list, result: PluginResult = None, error: str = None):
    output_data = {
        "outcomes": [outcome.to_dict() for outcome in outcomes],
        "checksSkipped": bool(result and result.checks_skipped),
        "error": error,
    }
    if result is not None:
        output_data["multiDexEnabled"] = result.multidex_enabled
        output_data["manifestPlaceholders"] = result.manifest_placeholders
    click.echo(json.dumps(output_data, indent=2))


# --- CLI Definition ---
@click.group(context_settings=dict(help_option_names=['-h', '--help']))
def cli():
    """
    flutter-depcheck: validates the Gradle, Java, Android Gradle Plugin and
    Kotlin versions of a Flutter Android host project against Flutter's
    support policy.
    """
    pass


@cli.command("check")
@click.argument("project_dir", type=click.Path(exists=True, file_okay=False, resolve_path=True), default=".")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help=f"YAML config file (default: PROJECT_DIR/{CONFIG_FILENAME}).")
@click.option("--format", "output_format", type=click.Choice(['text', 'json'], case_sensitive=False), default=None, help="Output format.  [default: text]")
@click.option("--gradle-version", type=str, help="Use this Gradle version instead of detecting it.")
@click.option("--java-version", type=str, help="Use this Java version instead of running 'java -version'.")
@click.option("--agp-version", type=str, help="Use this Android Gradle Plugin version instead of detecting it.")
@click.option("--kgp-version", type=str, help="Use this Kotlin Gradle Plugin version instead of detecting it.")
@click.option("--java-home", type=click.Path(file_okay=False), help="JDK to query (default: $JAVA_HOME, then java on PATH).")
@click.option("-P", "--property", "properties", multiple=True, metavar="KEY=VALUE", help="Gradle project property (repeatable).")
@click.option(SKIP_VALIDATION_FLAG, "skip_validation", is_flag=True, help="Skip the dependency version checks.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def check(project_dir, config_path, output_format, gradle_version, java_version, agp_version, kgp_version,
          java_home, properties, skip_validation, verbose):
    """Checks the build dependency versions of an Android host project."""
    _setup_logging(verbose)
    project_path = Path(project_dir)
    config, thresholds = _load_thresholds(config_path, project_path)
    output_format = (output_format or str(config.get('format', 'text'))).lower()

    extra_properties = _parse_properties(properties)
    if skip_validation:
        extra_properties[SKIP_DEPENDENCY_CHECKS_PROPERTY] = "true"
    project = GradleProject.load(project_path, extra_properties)

    overrides = {
        Dependency.GRADLE: gradle_version,
        Dependency.JAVA: java_version,
        Dependency.AGP: agp_version,
        Dependency.KGP: kgp_version,
    }
    providers = default_providers(project_path, overrides, java_home=java_home)

    try:
        result = apply_plugin(project, thresholds, providers)
    except PolicyViolation as e:
        if output_format == 'json':
            print_json_report(e.outcomes, error=str(e))
        else:
            print_text_report(e.outcomes)
            click.secho(f"\n{e}", fg="red", err=True)
        sys.exit(1)

    if output_format == 'json':
        print_json_report(result.outcomes, result)
    else:
        print_text_report(result.outcomes, result)


@cli.command("thresholds")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help=f"YAML config file (default: ./{CONFIG_FILENAME}).")
@click.option("--format", "output_format", type=click.Choice(['text', 'json'], case_sensitive=False), default='text', show_default=True, help="Output format.")
def show_thresholds(config_path, output_format):
    """Prints the effective support policy."""
    _setup_logging(False)
    _, thresholds = _load_thresholds(config_path, Path.cwd())
    rows = []
    for dependency in CHECK_ORDER:
        limits = thresholds.for_dependency(dependency)
        rows.append((dependency, limits.error_below, limits.warn_below))
    if output_format.lower() == 'json':
        click.echo(json.dumps({dep.key: {"name": dep.display_name, "error_below": str(err), "warn_below": str(warn)}
                               for dep, err, warn in rows}, indent=2))
        return
    click.echo(f"{'Dependency':<12} {'Error below':<12} {'Warn below':<12}")
    for dependency, error_below, warn_below in rows:
        click.echo(f"{dependency.display_name:<12} {str(error_below):<12} {str(warn_below):<12}")


@cli.command("parse-version")
@click.argument("text", type=str)
def parse_version_command(text):
    """Prints the canonical major.minor.patch form of TEXT."""
    try:
        click.echo(str(Version.parse(text)))
    except ParseError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
