"""Platform directory lookup.

The "development" and "world" export targets need two facts about the
local game installation: the ``com.mojang`` content-staging directory and
the list of installed worlds. The export chain asks for them through the
narrow ``PlatformLookup`` protocol; ``MojangLookup`` is the default
implementation.
"""

import os
from pathlib import Path
from typing import Protocol

import structlog

from packforge.core.constants import (
    UWP_COM_MOJANG_RELPATH,
    WORLD_NAME_FILENAME,
    WORLDS_DIRNAME,
)
from packforge.core.errors import ConfigError
from packforge.core.schemas import World

logger = structlog.get_logger(__name__)


class PlatformLookup(Protocol):
    """Source of platform-specific directories."""

    def staging_dir(self) -> Path:
        """Return the content-staging (com.mojang) directory."""
        ...

    def list_worlds(self) -> list[World]:
        """Return the installed worlds."""
        ...


class MojangLookup:
    """Finds com.mojang and its worlds on the local machine.

    The directory is taken from, in order: the explicit ``com_mojang``
    argument, the ``PACKFORGE_COM_MOJANG`` environment variable, and the
    Windows UWP location below ``LOCALAPPDATA``.
    """

    def __init__(self, com_mojang: str | Path | None = None) -> None:
        self._com_mojang = Path(com_mojang) if com_mojang is not None else None

    def staging_dir(self) -> Path:
        """Locate the com.mojang directory.

        Raises:
            ConfigError: If the directory cannot be found
        """
        if self._com_mojang is not None:
            candidate = self._com_mojang
        elif env_path := os.getenv("PACKFORGE_COM_MOJANG"):
            candidate = Path(env_path).expanduser()
        elif local_app_data := os.getenv("LOCALAPPDATA"):
            candidate = Path(local_app_data).joinpath(*UWP_COM_MOJANG_RELPATH)
        else:
            raise ConfigError(
                "Unable to find the com.mojang directory. Set "
                "PACKFORGE_COM_MOJANG to its location.",
                field="PACKFORGE_COM_MOJANG",
            )

        if not candidate.is_dir():
            raise ConfigError(
                f"The com.mojang directory does not exist: {candidate}",
                field="PACKFORGE_COM_MOJANG",
            )
        return candidate

    def list_worlds(self) -> list[World]:
        """List worlds found in ``com.mojang/minecraftWorlds``.

        Directories without a readable levelname.txt are skipped.

        Raises:
            ConfigError: If com.mojang cannot be found
        """
        worlds_dir = self.staging_dir() / WORLDS_DIRNAME
        if not worlds_dir.is_dir():
            return []

        worlds: list[World] = []
        for world_dir in sorted(worlds_dir.iterdir()):
            if not world_dir.is_dir():
                continue
            try:
                name = (world_dir / WORLD_NAME_FILENAME).read_text(
                    encoding="utf-8"
                ).strip()
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(
                    "worlds.levelname_unreadable", path=str(world_dir), error=str(e)
                )
                continue
            worlds.append(World(id=world_dir.name, name=name, path=world_dir))
        return worlds
