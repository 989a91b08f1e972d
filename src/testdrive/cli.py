# cli.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import click

from testdrive.config import Config, apply_flags, load_config
from testdrive.errors import CIError, ConfigError
from testdrive.execution.privileged import privileged_allowed
from testdrive.git_facts.git import project_root
from testdrive.model import Workflow
from testdrive.pipeline import load_pipeline
from testdrive.report import Summary
from testdrive.runner import RunOptions, run_workflows
from testdrive.ui.console import Console, get_console, set_console
from testdrive.ui.json_output import JsonRenderer, build_report
from testdrive.ui.pretty import PrettyRenderer
from testdrive.ui.renderers import FORMAT_JSON, FORMAT_PRETTY, select_renderer

NOTHING_TO_DO = "No matching jobs or steps"


def selection_options(fn):
    """Options shared by `list` and `run`. Unset flags stay None so config values win."""
    options = [
        click.option("--provider", default=None, help="Workflow provider to use (auto|github)"),
        click.option("--workflow", "workflows", multiple=True, help="Workflow file to include (repeatable)"),
        click.option("--job", "jobs", multiple=True, help="Job filter, substring or /regex/ (repeatable)"),
        click.option("--only-step", "only_step", multiple=True, help="Include only matching steps (repeatable)"),
        click.option("--skip-step", "skip_step", multiple=True, help="Exclude matching steps (repeatable)"),
        click.option("--dry-run/--no-dry-run", "dry_run", default=None, help="Print commands without executing them"),
        click.option("-v", "--verbose/--no-verbose", "verbose", default=None, help="Stream command output in real time"),
        click.option(
            "--format",
            "fmt",
            type=click.Choice([FORMAT_PRETTY, FORMAT_JSON], case_sensitive=False),
            default=None,
            help="Output format",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def load_settings(root: Path, **flags) -> Config:
    """Defaults < .testdrive.yml < flags given on the command line."""
    cfg = load_config(root)
    flags["format"] = flags.pop("fmt", None)
    apply_flags(cfg, flags)
    cfg.format = cfg.format.lower()
    if cfg.format not in (FORMAT_PRETTY, FORMAT_JSON):
        raise ConfigError(f"unsupported format {cfg.format!r}", details={"supported": "pretty, json"})
    return cfg


def list_summary(workflows: List[Workflow]) -> Summary:
    return Summary(
        total_workflows=len(workflows),
        total_jobs=sum(len(wf.jobs) for wf in workflows),
        total_steps=sum(len(job.steps) for wf in workflows for job in wf.jobs),
    )


def _print_warnings(cfg: Config, warnings: List[str]) -> None:
    # json output carries warnings inside the document
    if cfg.format != FORMAT_PRETTY:
        return
    console = get_console()
    for msg in warnings:
        console.print_warning(msg)


def _fail(exc: CIError) -> None:
    console = get_console()
    console.print_exception(exc)
    if exc.details:
        for key, value in exc.details.items():
            console.print_debug(f"{key}: {value}")
    sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """testdrive: run GitHub Actions `run:` steps locally."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command(name="list")
@selection_options
def list_cmd(**flags):
    """List workflow jobs and steps."""
    try:
        root = project_root()
        cfg = load_settings(root, **flags)
        pipeline = load_pipeline(root, cfg)
    except CIError as e:
        _fail(e)

    warnings = [str(w) for w in pipeline.warnings]
    if not pipeline.workflows:
        click.echo(NOTHING_TO_DO)
        return

    if cfg.format == FORMAT_JSON:
        JsonRenderer().render(
            build_report(
                pipeline.provider,
                pipeline.workflows,
                list_summary(pipeline.workflows),
                warnings=warnings,
            )
        )
    else:
        PrettyRenderer().render_list(pipeline.workflows)
    _print_warnings(cfg, warnings)


@cli.command()
@selection_options
def run(**flags):
    """Run workflow steps locally."""
    console = get_console()
    try:
        root = project_root()
        cfg = load_settings(root, **flags)
        pipeline = load_pipeline(root, cfg)
        warnings = [str(w) for w in pipeline.warnings]

        options = RunOptions(
            root=root,
            verbose=cfg.verbose,
            dry_run=cfg.dry_run,
            allow_privileged=privileged_allowed(),
            privileged_patterns=cfg.privileged_command_patterns or None,
        )
        renderer = select_renderer(
            cfg.format,
            verbose=cfg.verbose,
            dry_run=cfg.dry_run,
            provider=pipeline.provider,
            workflows=pipeline.workflows,
            warnings=warnings,
        )
        report = run_workflows(pipeline.workflows, options, renderer=renderer)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except CIError as e:
        _fail(e)

    if report.nothing_to_do:
        click.echo(NOTHING_TO_DO)
        return

    _print_warnings(cfg, warnings)
    if report.failed:
        console.print_error(
            "Run failed",
            "one or more steps failed",
            details=[f"{report.summary.failed} of {report.summary.total_steps} step(s) failed"],
        )
        sys.exit(1)


if __name__ == "__main__":
    cli()
