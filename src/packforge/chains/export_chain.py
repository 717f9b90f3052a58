"""Export chain for publishing built packs into their destinations.

This module provides the ExportChain class that runs the export phase of a
build: it resolves the destinations of a profile's export target, refuses to
touch destinations holding files packforge did not create, and relocates
the freshly built packs inside a transaction that is undone on any failure.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from packforge.cache.paths import backup_path, manifest_path, resolve_cache_dir
from packforge.core.constants import (
    BP_DIRNAME,
    DATA_DIRNAME,
    DEVELOPMENT_BP_DIRNAME,
    DEVELOPMENT_RP_DIRNAME,
    EXPORT_TARGETS,
    LOCAL_BP_PATH,
    LOCAL_RP_PATH,
    RP_DIRNAME,
    WORLD_BP_DIRNAME,
    WORLD_RP_DIRNAME,
)
from packforge.core.errors import (
    ConfigError,
    FatalRecoveryError,
    FilesystemError,
    SafetyViolationError,
)
from packforge.core.minecraft import MojangLookup, PlatformLookup
from packforge.core.schemas import ExportPaths, ExportResult, ExportTarget
from packforge.fs.manifest import OwnershipManifest
from packforge.fs.paths import make_read_only
from packforge.fs.transaction import Transaction


def resolve_export_paths(
    target: ExportTarget,
    project_name: str,
    lookup: PlatformLookup | None = None,
) -> ExportPaths:
    """Resolve the behavior and resource pack destinations of a target.

    Args:
        target: Export target of the profile
        project_name: Name of the project, used in pack directory names
        lookup: Platform lookup for "development" and "world" targets

    Returns:
        ExportPaths with the behavior pack and resource pack destinations

    Raises:
        ConfigError: If the target is unknown, incomplete or ambiguous, or a
            named world cannot be found
    """
    kind = target.target

    if kind == "development":
        staging = (lookup or MojangLookup()).staging_dir()
        return ExportPaths(
            str(staging / DEVELOPMENT_BP_DIRNAME / f"{project_name}_bp"),
            str(staging / DEVELOPMENT_RP_DIRNAME / f"{project_name}_rp"),
        )

    if kind == "exact":
        if not target.bp_path or not target.rp_path:
            raise ConfigError(
                'The "exact" export target requires both "bpPath" and "rpPath".',
                field="bpPath" if not target.bp_path else "rpPath",
            )
        return ExportPaths(target.bp_path, target.rp_path)

    if kind == "world":
        if target.world_path and target.world_name:
            raise ConfigError(
                'Using both "worldName" and "worldPath" is not allowed.',
                field="worldName",
            )
        if target.world_path:
            world_dir = Path(target.world_path)
        elif target.world_name:
            world_dir = _find_world(target.world_name, lookup or MojangLookup())
        else:
            raise ConfigError(
                'The "world" export target requires either a "worldName" or '
                '"worldPath" property.',
                field="worldName",
            )
        return ExportPaths(
            str(world_dir / WORLD_BP_DIRNAME / f"{project_name}_bp"),
            str(world_dir / WORLD_RP_DIRNAME / f"{project_name}_rp"),
        )

    if kind == "local":
        return ExportPaths(LOCAL_BP_PATH, LOCAL_RP_PATH)

    raise ConfigError(
        f"Export '{kind}' target not valid. Valid targets are: "
        f"{', '.join(EXPORT_TARGETS)}",
        field="target",
    )


def _find_world(name: str, lookup: PlatformLookup) -> Path:
    matches = [world for world in lookup.list_worlds() if world.name == name]
    if not matches:
        raise ConfigError(f'World "{name}" was not found.', field="worldName")
    if len(matches) > 1:
        raise ConfigError(
            f'Found {len(matches)} worlds named "{name}". Use "worldPath" '
            "to select one of them.",
            field="worldName",
        )
    return matches[0].path


def _absolute(path: str | Path, root: Path) -> Path:
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = root / candidate
    return Path(os.path.abspath(candidate))


@dataclass
class ExportOptions:
    """Options for export operations.

    Attributes:
        project_name: Name of the project
        target: Export target of the profile
        project_root: Root directory of the project; relative destinations
            are resolved against it
        cache_dir: Explicit cache directory (defaults to the project's)
        read_only: Mark exported files read-only; None uses the target's flag
        data_path: Optional destination for the filter data directory
        use_app_data: Keep the cache in the user cache directory instead of
            the project's .packforge directory
    """

    project_name: str
    target: ExportTarget
    project_root: str = "."
    cache_dir: str | None = None
    read_only: bool | None = None
    data_path: str | None = None
    use_app_data: bool = False


@dataclass
class _ResolvedExport:
    cache_dir: Path
    manifest_path: Path
    bp_path: Path
    rp_path: Path


class ExportChain:
    """Publishes built packs with deletion safety and transactional undo.

    Destinations are checked against the ownership manifest before anything
    is touched. Clearing and relocation run inside a single Transaction; on
    failure the transaction is undone and the original error re-raised.
    """

    def __init__(
        self,
        logger: Any = None,
        ui: Console | None = None,
        lookup: PlatformLookup | None = None,
    ) -> None:
        """Initialize export chain.

        Args:
            logger: Optional structlog logger instance
            ui: Optional Rich console for output
            lookup: Optional platform lookup for development/world targets
        """
        self._logger = logger or structlog.get_logger(__name__)
        self._ui = ui or Console()
        self._lookup = lookup

    def check(self, opts: ExportOptions) -> ExportPaths:
        """Run the deletion-safety check without exporting anything.

        Returns:
            The absolute destinations that were checked

        Raises:
            SafetyViolationError: If a destination holds an unknown file
            ConfigError: If the export target is invalid
        """
        resolved = self._resolve(opts)
        self._check_safety(resolved, self._logger)
        return ExportPaths(str(resolved.bp_path), str(resolved.rp_path))

    def export(self, built_output_root: str | Path, opts: ExportOptions) -> ExportResult:
        """Move built packs into the export destinations.

        Args:
            built_output_root: Directory holding the built ``BP`` and ``RP``
                (and optionally ``data``) directories
            opts: Export options

        Returns:
            ExportResult describing the exported destinations

        Raises:
            SafetyViolationError: If a destination holds an unknown file; the
                filesystem is left untouched
            ConfigError: If the export target is invalid
            FatalRecoveryError: If the export failed and undoing it failed too
            PackforgeError: Any other failure, after the export was undone
        """
        resolved = self._resolve(opts)
        read_only = opts.target.read_only if opts.read_only is None else opts.read_only
        built = Path(built_output_root)
        data_path = (
            _absolute(opts.data_path, Path(opts.project_root).resolve())
            if opts.data_path
            else None
        )

        bound_logger = self._logger.bind(
            project=opts.project_name,
            target=opts.target.target,
            bp_path=str(resolved.bp_path),
            rp_path=str(resolved.rp_path),
        )

        manifest = self._check_safety(resolved, bound_logger)

        tx = Transaction(backup_path(resolved.cache_dir))
        steps: list[tuple[str, Callable[[], None]]] = [
            ("Clearing behavior pack", lambda: tx.delete_dir(resolved.bp_path)),
            ("Clearing resource pack", lambda: tx.delete_dir(resolved.rp_path)),
        ]
        if data_path is not None:
            steps.append(("Clearing filter data", lambda: tx.delete_dir(data_path)))
        steps += [
            (
                "Exporting behavior pack",
                lambda: _relocate(tx, built / BP_DIRNAME, resolved.bp_path),
            ),
            (
                "Exporting resource pack",
                lambda: _relocate(tx, built / RP_DIRNAME, resolved.rp_path),
            ),
        ]
        if data_path is not None:
            steps.append(
                (
                    "Exporting filter data",
                    lambda: _relocate(tx, built / DATA_DIRNAME, data_path),
                )
            )

        try:
            self._run_steps(steps)
        except BaseException as exc:
            bound_logger.error("export.failed", error=str(exc))
            bound_logger.warning("export.undo", pending=len(tx.actions))
            try:
                tx.undo()
            except FatalRecoveryError as fatal:
                bound_logger.critical(
                    "export.undo_failed", backup_path=str(fatal.backup_path)
                )
                raise fatal from exc
            raise

        if read_only:
            for destination in (resolved.bp_path, resolved.rp_path):
                failed = make_read_only(destination)
                if failed:
                    bound_logger.warning(
                        "export.read_only_failed",
                        path=str(destination),
                        failed_count=len(failed),
                    )

        # Packs are already in place; record them before reporting a commit error.
        commit_error: FilesystemError | None = None
        try:
            tx.commit()
        except FilesystemError as exc:
            commit_error = exc

        manifest.update_from_paths(resolved.rp_path, resolved.bp_path)
        manifest.dump(resolved.manifest_path)
        if commit_error is not None:
            raise commit_error

        result = ExportResult(
            project=opts.project_name,
            target=opts.target.target,
            bp_path=resolved.bp_path,
            rp_path=resolved.rp_path,
            data_path=data_path,
            bp_files=len(manifest.files_for("bp", resolved.bp_path)),
            rp_files=len(manifest.files_for("rp", resolved.rp_path)),
            read_only=read_only,
            manifest_path=resolved.manifest_path,
        )
        bound_logger.info(
            "export.summary",
            bp_files=result.bp_files,
            rp_files=result.rp_files,
            read_only=read_only,
            manifest_path=str(resolved.manifest_path),
        )
        return result

    def _resolve(self, opts: ExportOptions) -> _ResolvedExport:
        project_root = Path(opts.project_root).resolve()
        cache_dir = resolve_cache_dir(
            project_root, opts.cache_dir, use_app_data=opts.use_app_data
        )
        paths = resolve_export_paths(opts.target, opts.project_name, self._lookup)
        return _ResolvedExport(
            cache_dir=cache_dir,
            manifest_path=manifest_path(cache_dir),
            bp_path=_absolute(paths.bp_path, project_root),
            rp_path=_absolute(paths.rp_path, project_root),
        )

    def _check_safety(
        self, resolved: _ResolvedExport, bound_logger: Any
    ) -> OwnershipManifest:
        manifest = OwnershipManifest.load(resolved.manifest_path)
        try:
            manifest.check_deletion_safety(resolved.rp_path, resolved.bp_path)
        except SafetyViolationError as exc:
            bound_logger.error(
                "export.safety_failed",
                relative_path=exc.relative_path,
                destination=str(exc.destination),
                manifest_path=str(resolved.manifest_path),
            )
            raise exc.with_manifest_path(resolved.manifest_path) from exc
        return manifest

    def _run_steps(self, steps: list[tuple[str, Callable[[], None]]]) -> None:
        with self._create_progress() as progress:
            task = progress.add_task("Export", total=len(steps))
            for description, step in steps:
                progress.update(task, description=description)
                step()
                progress.advance(task)

    def _create_progress(self) -> Progress:
        """Create Rich progress display."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self._ui,
            transient=True,
        )


def _relocate(tx: Transaction, source: Path, target: Path) -> None:
    """Move built output into place; missing output becomes an empty directory."""
    if not os.path.lexists(source):
        tx.mkdir_all(target)
        return
    tx.move_or_copy_dir(source, target)


def export_project(
    built_output_root: str | Path,
    target: ExportTarget,
    project_name: str,
    read_only: bool | None = None,
    *,
    project_root: str = ".",
    cache_dir: str | None = None,
    data_path: str | None = None,
    use_app_data: bool = False,
    lookup: PlatformLookup | None = None,
    ui: Console | None = None,
) -> ExportResult:
    """Export built packs to the destinations of ``target``.

    Convenience wrapper around ``ExportChain.export``.
    """
    opts = ExportOptions(
        project_name=project_name,
        target=target,
        project_root=project_root,
        cache_dir=cache_dir,
        read_only=read_only,
        data_path=data_path,
        use_app_data=use_app_data,
    )
    return ExportChain(ui=ui, lookup=lookup).export(built_output_root, opts)
