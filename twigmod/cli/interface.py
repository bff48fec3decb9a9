# twigmod/cli/interface.py
import sys
import json
import functools
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
from click_option_group import optgroup
from rich.console import Console as RichConsole
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
import structlog
import logging as stdlib_logging

from twigmod import __version__ as app_version
from twigmod.config.loader import load_config
from twigmod.config.settings import TwigmodConfig
from twigmod.logging_setup import configure_logging
from twigmod.core.discovery import discover_templates
from twigmod.core.output import write_to_stdout, write_to_file
from twigmod.core.resolution.loader import read_template_source
from twigmod.core.runtime import import_template
from twigmod.core.transform import TemplateTransformer
from twigmod.exceptions import TwigmodError
from twigmod.util import module_file_name
from twigmod.cli.console_output import (
    dependency_json, dependency_plain, print_build_summary, print_dependency_table,
)

log = structlog.get_logger(__name__)


def _parse_key_value_pairs(values: Tuple[str, ...], option_name: str) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    for item in values:
        if "=" not in item:
            raise click.BadParameter(f"expected KEY=VALUE, got '{item}'", param_hint=option_name)
        key, value = item.split("=", 1)
        pairs[key.strip()] = value
    return pairs


def _effective_config(ctx: click.Context, **command_overrides: Any) -> TwigmodConfig:
    # defaults < config file < profile < group options < command options.
    params = ctx.find_root().params
    overrides: Dict[str, Any] = {}
    if params.get("root") is not None:
        overrides["root"] = params["root"]
    if params.get("namespaces"):
        overrides["namespaces"] = _parse_key_value_pairs(params["namespaces"], "--namespace")
    if params.get("extensions"):
        overrides["extensions"] = list(params["extensions"])
    for flag in ("autoescape", "strict_variables"):
        if params.get(flag) is not None:
            overrides[flag] = params[flag]
    overrides.update({k: v for k, v in command_overrides.items() if v not in (None, (), [])})

    start_dir = params.get("root") or Path.cwd()
    return load_config(
        start_dir=start_dir,
        config_file=params.get("config_file"),
        profile=params.get("profile"),
        overrides=overrides,
    )


def handle_app_errors(command):
    # application errors end the process with a red message instead of a traceback.
    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except TwigmodError as e:
            log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
            click.secho(f"Error: {e}", fg="red", err=True)
            sys.exit(1)
    return wrapper


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@optgroup.group("Project Options", help="Where templates live and how names resolve.")
@optgroup.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="Config file. Default: .twigmod.toml, twigmod.toml or pyproject.toml in the root.")
@optgroup.option("--profile", "profile", default=None, help="Apply a [profiles.<name>] table from the config file.")
@optgroup.option("--root", "root", type=click.Path(exists=True, file_okay=False, path_type=Path), default=None, help="Project root. Default: the config file's directory or the current directory.")
@optgroup.option("-n", "--namespace", "namespaces", multiple=True, metavar="NAME=DIR", help="Template namespace, e.g. -n project=src (used as '@project/...').")
@optgroup.option("--extension", "extensions", multiple=True, metavar="EXT", help="Template file extension(s). Default: .twig")
@optgroup.group("Rendering Options", help="Options passed to the template environment.")
@optgroup.option("--autoescape/--no-autoescape", "autoescape", default=None, help="HTML-escape output expressions.")
@optgroup.option("--strict-variables/--no-strict-variables", "strict_variables", default=None, help="Fail on undefined variables.")
@optgroup.group("Application Behavior", help="Logging.")
@optgroup.option("--verbose", "-v", "verbosity_level", count=True, help="Verbosity: -v info, -vv debug.")
@optgroup.option("--json-logs", "force_json_logs", is_flag=True, default=False, help="Emit logs as JSON lines.")
@click.version_option(version=app_version, prog_name="twigmod", help="Show version and exit.")
@click.pass_context
def main_cli_group(ctx: click.Context, **cli_params: Any):
    """twigmod: compile templates into importable Python modules with
    statically resolved template dependencies."""
    log_level = "warning"
    if cli_params.get("verbosity_level", 0) == 1: log_level = "info"
    elif cli_params.get("verbosity_level", 0) >= 2: log_level = "debug"
    configure_logging(log_level_str=log_level, force_json_logs=cli_params.get("force_json_logs", False))
    log.debug("cli_command_invoked", subcommand=ctx.invoked_subcommand)


@main_cli_group.command("deps")
@click.argument("template", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-F", "--format", "output_format", type=click.Choice(["table", "json", "plain"]), default="table", help="Output format. Default: table.")
@click.pass_context
@handle_app_errors
def deps_command(ctx: click.Context, template: Path, output_format: str):
    """Print the dependency order of TEMPLATE."""
    config = _effective_config(ctx)
    unit = TemplateTransformer(config).compile_unit(read_template_source(template), template)
    if output_format == "json":
        write_to_stdout(dependency_json(unit))
    elif output_format == "plain":
        write_to_stdout(dependency_plain(unit))
    else:
        print_dependency_table(unit, config.root, RichConsole())


@main_cli_group.command("compile")
@click.argument("template", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", "output_file", type=click.Path(dir_okay=False, writable=True, path_type=Path), default=None, help="Write the module here instead of stdout.")
@click.pass_context
@handle_app_errors
def compile_command(ctx: click.Context, template: Path, output_file: Optional[Path]):
    """Print the generated module source for TEMPLATE."""
    config = _effective_config(ctx)
    code = TemplateTransformer(config).transform(read_template_source(template), template)
    if code is None:
        raise click.UsageError(f"{template} does not have a template extension ({', '.join(config.extensions)})")
    if output_file:
        write_to_file(output_file, code)
        click.echo(f"Info: Module written to: {output_file}", err=True)
    else:
        write_to_stdout(code)


def build_output_path(template: Path, config: TwigmodConfig) -> Path:
    file_name = module_file_name(template, config.extensions)
    if config.output_dir is None:
        return template.parent / file_name
    try:
        relative_parent = template.parent.relative_to(config.root)
    except ValueError:
        relative_parent = Path()
    return config.output_dir / relative_parent / file_name


@main_cli_group.command("build")
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output-dir", "output_dir", type=click.Path(file_okay=False, path_type=Path), default=None, help="Mirror modules into this directory. Default: next to each template.")
@optgroup.group("Filtering Options", help="Control which templates are compiled.")
@optgroup.option("-i", "--include", "include_patterns", multiple=True, help="Glob patterns for templates to include.")
@optgroup.option("-e", "--exclude", "exclude_patterns", multiple=True, help="Glob patterns for templates to exclude.")
@optgroup.option("--no-ignore", "no_ignore", is_flag=True, default=None, help="Disable .gitignore file processing.")
@optgroup.option("--hidden", "hidden", is_flag=True, default=None, help="Include hidden files and directories.")
@optgroup.option("-L", "--follow-symlinks", "follow_symlinks", is_flag=True, default=None, help="Follow symbolic links.")
@click.pass_context
@handle_app_errors
def build_command(ctx: click.Context, paths: Tuple[Path, ...], **build_options: Any):
    """Compile every template under PATHS (default: the project root) into a module."""
    overrides: Dict[str, Any] = {
        "input_paths": [p.resolve() for p in paths],
        "output_dir": build_options["output_dir"].resolve() if build_options["output_dir"] else None,
        "include_patterns": list(build_options["include_patterns"]),
        "exclude_patterns": list(build_options["exclude_patterns"]),
        "no_ignore": build_options["no_ignore"] or None,
        "hidden": build_options["hidden"] or None,
        "follow_symlinks": build_options["follow_symlinks"] or None,
    }
    config = _effective_config(ctx, **overrides)
    transformer = TemplateTransformer(config)
    templates = list(discover_templates(config))
    log.info("templates_discovered", count=len(templates))

    written: List[Path] = []
    failed: List[Tuple[Path, str]] = []
    app_log_level = stdlib_logging.getLogger("twigmod").getEffectiveLevel()
    progress_disabled = app_log_level < stdlib_logging.WARNING or not sys.stderr.isatty()
    with Progress(
        SpinnerColumn(), TextColumn("[bold blue]{task.description}"), BarColumn(),
        transient=True, disable=progress_disabled, console=RichConsole(file=sys.stderr),
    ) as progress:
        task_id = progress.add_task("compiling templates...", total=len(templates))
        for template in templates:
            progress.update(task_id, description=f"compiling {template.name}")
            try:
                code = transformer.transform(read_template_source(template), template)
                target = build_output_path(template, config)
                write_to_file(target, code)
                written.append(target)
            except (TwigmodError, OSError, UnicodeDecodeError) as e:
                log.error("template_build_failed", template=str(template), error=str(e))
                failed.append((template, str(e)))
            progress.update(task_id, advance=1)

    print_build_summary(written, failed)
    if failed:
        sys.exit(1)


@main_cli_group.command("render")
@click.argument("template", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--var", "user_vars", multiple=True, metavar="KEY=VALUE", help="Context variable (string value).")
@click.option("--context", "context_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="JSON file holding the render context.")
@click.pass_context
@handle_app_errors
def render_command(ctx: click.Context, template: Path, user_vars: Tuple[str, ...], context_file: Optional[Path]):
    """Import TEMPLATE as a module and print its rendered output."""
    config = _effective_config(ctx)
    context: Dict[str, Any] = {}
    if context_file:
        try:
            context.update(json.loads(context_file.read_text(encoding="utf-8")))
        except (ValueError, TypeError) as e:
            raise click.BadParameter(f"{context_file} is not a JSON object: {e}", param_hint="--context")
    context.update(_parse_key_value_pairs(user_vars, "--var"))

    module = import_template(str(template.resolve()), config.to_options())
    output = module.render(context)
    write_to_stdout(output if output.endswith("\n") else output + "\n")
