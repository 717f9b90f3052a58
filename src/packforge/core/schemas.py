"""Pydantic schemas for export configuration and results.

These schemas define the data structures passed between the configuration
layer and the export chain:
- ExportTarget: Where a profile exports its packs
- ExportPaths: Concrete behavior/resource pack destinations
- World: An installed world found by the platform lookup
- ExportResult: Summary of a finished export

All schemas use Pydantic v2 for validation and serialization.
"""

from pathlib import Path
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer

from packforge.core.errors import ConfigError


class ExportTarget(BaseModel):
    """Export settings of a profile.

    Attributes:
        target: Destination kind (development, exact, world, local)
        bp_path: Behavior pack destination (exact only)
        rp_path: Resource pack destination (exact only)
        world_name: Name of an installed world (world only)
        world_path: Path of a world directory (world only)
        read_only: Mark exported files read-only
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    target: str
    bp_path: str | None = Field(default=None, alias="bpPath")
    rp_path: str | None = Field(default=None, alias="rpPath")
    world_name: str | None = Field(default=None, alias="worldName")
    world_path: str | None = Field(default=None, alias="worldPath")
    read_only: bool = Field(default=False, alias="readOnly")

    @classmethod
    def from_config(cls, data: dict[str, Any]) -> "ExportTarget":
        """Build a target from a profile's ``export`` object.

        Raises:
            ConfigError: If the object does not describe a valid target
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigError(
                f"Invalid export target: {first.get('msg', 'invalid value')}",
                field=field or None,
            ) from e


class ExportPaths(NamedTuple):
    """Behavior and resource pack destinations of an export."""

    bp_path: str
    rp_path: str


class World(BaseModel):
    """An installed world.

    Attributes:
        id: Directory name of the world
        name: Display name (from levelname.txt)
        path: Absolute path of the world directory
    """

    id: str
    name: str
    path: Path

    @field_serializer("path")
    def serialize_path(self, path: Path) -> str:
        """Serialize Path to string for JSON."""
        return str(path)


class ExportResult(BaseModel):
    """Summary of a successful export.

    Attributes:
        project: Project name
        target: Export target kind
        bp_path: Absolute behavior pack destination
        rp_path: Absolute resource pack destination
        data_path: Absolute filter data destination, if exported
        bp_files: Number of files in the behavior pack destination
        rp_files: Number of files in the resource pack destination
        read_only: Whether files were marked read-only
        manifest_path: Location of the updated ownership manifest
    """

    project: str
    target: str
    bp_path: Path
    rp_path: Path
    data_path: Path | None = None
    bp_files: int = 0
    rp_files: int = 0
    read_only: bool = False
    manifest_path: Path

    @field_serializer("bp_path", "rp_path", "data_path", "manifest_path")
    def serialize_paths(self, path: Path | None) -> str | None:
        """Serialize Paths to strings for JSON."""
        return str(path) if path is not None else None


__all__ = [
    "ExportPaths",
    "ExportResult",
    "ExportTarget",
    "World",
]
