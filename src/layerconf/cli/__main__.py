from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

import typer

from ..bootstrap import PredefinedBuilder
from ..core import coerce as shapes
from ..core.configuration import Configuration
from ..core.errors import ConfigError
from ..log import setup_logging

app = typer.Typer(help="Inspect layered configuration")

SHAPES: Dict[str, Any] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "duration": timedelta,
    "list": List[str],
    "any": Any,
    "f32": shapes.F32,
    **{s.name: s for s in shapes.INT_SHAPES},
}


@dataclass
class _Options:
    files: List[str] = field(default_factory=list)
    overrides: Dict[str, str] = field(default_factory=dict)
    env_prefix: Optional[str] = None
    name: Optional[str] = None
    profile: Optional[str] = None
    dir: Optional[str] = None


def _parse_override(item: str) -> Tuple[str, str]:
    key, sep, value = item.partition("=")
    if not sep or not key.strip():
        raise typer.BadParameter(f"expected KEY=VALUE, got {item!r}")
    return key.strip(), value


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _config(ctx: typer.Context) -> Configuration:
    opts: _Options = ctx.obj
    builder = PredefinedBuilder()
    for key, value in opts.overrides.items():
        builder.set(key, value)
    if opts.env_prefix:
        builder.set_prefix_env(opts.env_prefix)
    if opts.name:
        builder.set_name(opts.name)
    if opts.profile:
        builder.set_profile(opts.profile)
    if opts.dir:
        builder.set_dir(opts.dir)
    if opts.files:
        # explicit files rank above the conventional app files
        def register_files(config: Configuration) -> None:
            for path in opts.files:
                config.register_file(path)

        builder.set_init(register_files)
    try:
        return builder.init()
    except ConfigError as exc:
        raise _fail(exc)


def _dump(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


@app.callback()
def main(
    ctx: typer.Context,
    file: Optional[List[str]] = typer.Option(None, "--file", "-f", help="Configuration file, highest priority first"),
    set_: Optional[List[str]] = typer.Option(None, "--set", "-s", help="Override as KEY=VALUE"),
    env_prefix: Optional[str] = typer.Option(None, "--env-prefix", help="Environment prefix (default CFG)"),
    name: Optional[str] = typer.Option(None, "--name", help="Application name (app.name)"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Profile (app.profile)"),
    dir: Optional[str] = typer.Option(None, "--dir", help="Directory of application files (app.dir)"),
    log_level: str = typer.Option("WARNING", "--log-level"),
    log_format: str = typer.Option("console", "--log-format"),
):
    setup_logging(log_level, log_format)
    ctx.obj = _Options(
        files=list(file or []),
        overrides=dict(_parse_override(item) for item in set_ or []),
        env_prefix=env_prefix,
        name=name,
        profile=profile,
        dir=dir,
    )


@app.command()
def get(
    ctx: typer.Context,
    key: str,
    type_: str = typer.Option("str", "--type", "-t", help="One of: " + ", ".join(SHAPES)),
):
    if type_ not in SHAPES:
        raise typer.BadParameter(f"unknown type {type_!r}", param_hint="--type")
    config = _config(ctx)
    try:
        value = config.get(key, SHAPES[type_])
    except ConfigError as exc:
        raise _fail(exc)
    _dump({"key": key, "value": value, "source": config.source_of(key)})


@app.command()
def keys(ctx: typer.Context, prefix: str = typer.Argument("")):
    config = _config(ctx)
    _dump(sorted(k for k in config.keys() if not prefix or k == prefix or k.startswith(prefix + ".")))


@app.command()
def sources(ctx: typer.Context):
    config = _config(ctx)
    _dump([
        {
            "name": entry.name,
            "priority": entry.priority,
            "refreshable": entry.refreshable,
        }
        for entry in (layer.entry for layer in config.snapshot().layers)
    ])


@app.command()
def refresh(ctx: typer.Context):
    config = _config(ctx)
    report = config.refresh(raise_on_error=False)
    _dump({
        "published": report.published,
        "generation": report.generation,
        "sources": {r.source_name: r.outcome.status.value for r in report.results},
        "failed": report.failed_sources,
    })
    if not report.ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
