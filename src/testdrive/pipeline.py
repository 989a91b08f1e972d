# pipeline.py
from __future__ import annotations

from pathlib import Path

from .config import PROVIDER_AUTO, Config
from .discovery import find_workflows
from .errors import ProviderError
from .provider.filter import compile_patterns, filter_workflows
from .provider.github import PROVIDER_NAME as GITHUB, Parser, Pipeline
from .ui.console import get_console

SUPPORTED_PROVIDERS = (GITHUB,)


def resolve_provider(name: str) -> str:
    """Map the configured provider name to a supported one."""
    name = (name or PROVIDER_AUTO).strip().lower()
    if name in (PROVIDER_AUTO, GITHUB):
        return GITHUB
    raise ProviderError(
        f"unsupported provider {name!r}",
        details={"supported": ", ".join(SUPPORTED_PROVIDERS)},
    )


def load_pipeline(root: str | Path, cfg: Config) -> Pipeline:
    """Discover, parse and filter the workflows `cfg` selects."""
    console = get_console()
    provider = resolve_provider(cfg.provider)
    paths = find_workflows(root, cfg.workflows)
    console.print_debug(f"provider={provider} workflows={paths}")

    pipeline = Parser(root).parse(paths)
    pipeline.provider = provider
    return apply_filters(pipeline, cfg)


def apply_filters(pipeline: Pipeline, cfg: Config) -> Pipeline:
    pipeline.workflows = filter_workflows(
        pipeline.workflows,
        compile_patterns(cfg.jobs),
        compile_patterns(cfg.only_step),
        compile_patterns(cfg.skip_step),
    )
    return pipeline
