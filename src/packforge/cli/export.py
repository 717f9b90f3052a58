"""CLI commands for exporting built packs."""

from __future__ import annotations

import importlib
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

if TYPE_CHECKING:  # pragma: no cover - typing only
    import typer
    from typer import Typer as TyperType
else:  # pragma: no cover - runtime fallback for typing
    typer = importlib.import_module("typer")
    TyperType = Any

from rich.console import Console

from packforge.cache.paths import build_output_path, resolve_cache_dir
from packforge.chains.export_chain import ExportChain, ExportOptions
from packforge.core.errors import FatalRecoveryError, PackforgeError
from packforge.core.schemas import ExportTarget
from packforge.utils.logging_setup import configure_logging

app: TyperType = typer.Typer(help="Export built packs to their destinations.")


NameOption = Annotated[
    str,
    typer.Option("--name", help="Project name, used in pack directory names."),
]
TargetOption = Annotated[
    str,
    typer.Option(
        "--target", help="Export target (development, exact, world, local)."
    ),
]
BpPathOption = Annotated[
    str | None,
    typer.Option("--bp-path", help="Behavior pack destination (exact target)."),
]
RpPathOption = Annotated[
    str | None,
    typer.Option("--rp-path", help="Resource pack destination (exact target)."),
]
WorldNameOption = Annotated[
    str | None,
    typer.Option("--world-name", help="Installed world to export to."),
]
WorldPathOption = Annotated[
    str | None,
    typer.Option("--world-path", help="World directory to export to."),
]
ProjectRootOption = Annotated[
    Path,
    typer.Option("--project-root", help="Root directory of the project."),
]
CacheDirOption = Annotated[
    Path | None,
    typer.Option("--cache-dir", help="Optional override for the cache directory."),
]
SourceOption = Annotated[
    Path | None,
    typer.Option(
        "--source",
        help="Built output holding BP and RP (defaults to the cache's tmp dir).",
    ),
]
DataPathOption = Annotated[
    str | None,
    typer.Option("--data-path", help="Destination of the filter data directory."),
]
ReadOnlyFlag = Annotated[
    bool,
    typer.Option("--read-only", help="Mark exported files read-only."),
]
UseAppDataFlag = Annotated[
    bool,
    typer.Option(
        "--use-app-data",
        help="Keep the cache in the user cache directory instead of the project.",
    ),
]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", help="Emit the export result as JSON."),
]


def _build_target(
    target: str,
    bp_path: str | None,
    rp_path: str | None,
    world_name: str | None,
    world_path: str | None,
    read_only: bool,
) -> ExportTarget:
    return ExportTarget(
        target=target,
        bp_path=bp_path,
        rp_path=rp_path,
        world_name=world_name,
        world_path=world_path,
        read_only=read_only,
    )


def _fail(exc: PackforgeError) -> None:
    typer.secho(str(exc), err=True, fg=typer.colors.RED)
    code = 2 if isinstance(exc, FatalRecoveryError) else 1
    raise typer.Exit(code=code) from exc


def export(  # noqa: D401
    name: NameOption,
    target: TargetOption = "development",
    bp_path: BpPathOption = None,
    rp_path: RpPathOption = None,
    world_name: WorldNameOption = None,
    world_path: WorldPathOption = None,
    project_root: ProjectRootOption = Path("."),
    cache_dir: CacheDirOption = None,
    source: SourceOption = None,
    data_path: DataPathOption = None,
    read_only: ReadOnlyFlag = False,
    use_app_data: UseAppDataFlag = False,
    json_output: JsonFlag = False,
) -> None:
    """Move built packs into the export destinations."""

    configure_logging()
    opts = ExportOptions(
        project_name=name,
        target=_build_target(
            target, bp_path, rp_path, world_name, world_path, read_only
        ),
        project_root=str(project_root),
        cache_dir=str(cache_dir) if cache_dir is not None else None,
        data_path=data_path,
        use_app_data=use_app_data,
    )
    if source is None:
        source = build_output_path(
            resolve_cache_dir(project_root, opts.cache_dir, use_app_data=use_app_data)
        )

    try:
        result = ExportChain(ui=Console(stderr=True)).export(source, opts)
    except PackforgeError as exc:
        _fail(exc)
        return

    if json_output:
        typer.echo(result.model_dump_json(indent=2))
        return

    typer.secho(
        f"Exported {result.bp_files} behavior pack file(s) to {result.bp_path}",
        fg=typer.colors.GREEN,
    )
    typer.secho(
        f"Exported {result.rp_files} resource pack file(s) to {result.rp_path}",
        fg=typer.colors.GREEN,
    )


def check(  # noqa: D401
    name: NameOption,
    target: TargetOption = "development",
    bp_path: BpPathOption = None,
    rp_path: RpPathOption = None,
    world_name: WorldNameOption = None,
    world_path: WorldPathOption = None,
    project_root: ProjectRootOption = Path("."),
    cache_dir: CacheDirOption = None,
    use_app_data: UseAppDataFlag = False,
) -> None:
    """Check that the export destinations hold only files packforge created."""

    configure_logging()
    opts = ExportOptions(
        project_name=name,
        target=_build_target(
            target, bp_path, rp_path, world_name, world_path, False
        ),
        project_root=str(project_root),
        cache_dir=str(cache_dir) if cache_dir is not None else None,
        use_app_data=use_app_data,
    )
    try:
        paths = ExportChain(ui=Console(stderr=True)).check(opts)
    except PackforgeError as exc:
        _fail(exc)
        return

    typer.secho(
        f"Safe to export to {paths.bp_path} and {paths.rp_path}",
        fg=typer.colors.GREEN,
    )


def run_cli(args: Sequence[str] | None = None) -> None:
    app(args=args)


app.command("export")(export)
app.command("check")(check)
