"""Core constants for packforge.

This module defines constants used throughout the application:
- Filesystem operation tuning
- Cache-area layout
- Export target kinds and their fixed paths
"""

# ============================================================================
# Filesystem Operations
# ============================================================================

#: Buffer size used when streaming file contents (1 MB)
COPY_BUFFER_SIZE: int = 1_000_000

#: File mode applied to exported files when the target is read-only
READ_ONLY_MODE: int = 0o444

#: Mode used for directories created by a transaction
DIRECTORY_MODE: int = 0o755

#: Name of the undo journal kept inside a transaction's backup directory
JOURNAL_FILENAME: str = "journal.jsonl"

#: Version of the undo journal format
JOURNAL_SCHEMA_VERSION: str = "1.0"

# ============================================================================
# Cache Area
# ============================================================================

#: Default cache directory, relative to the project root
DEFAULT_CACHE_DIRNAME: str = ".packforge"

#: Cache directory below the user cache dir when app data is used
APP_DATA_CACHE_PATH: str = "packforge/project-cache"

#: Ownership manifest location, relative to the cache directory
MANIFEST_RELPATH: str = "cache/edited_files.json"

#: Backup directory for transactions, relative to the cache directory
BACKUP_DIRNAME: str = ".backup"

#: Scratch build output, relative to the cache directory
BUILD_OUTPUT_DIRNAME: str = "tmp"

# ============================================================================
# Pack Layout
# ============================================================================

#: Behavior pack directory inside the built output
BP_DIRNAME: str = "BP"

#: Resource pack directory inside the built output
RP_DIRNAME: str = "RP"

#: Filter data directory inside the built output
DATA_DIRNAME: str = "data"

#: Manifest keys and their human-readable names
PACK_KINDS: dict[str, str] = {
    "rp": "resource pack",
    "bp": "behavior pack",
}

# ============================================================================
# Export Targets
# ============================================================================

#: Valid export target kinds
EXPORT_TARGETS: tuple[str, ...] = ("development", "exact", "world", "local")

#: Fixed destination of the "local" export target
LOCAL_BP_PATH: str = "build/BP/"
LOCAL_RP_PATH: str = "build/RP/"

#: Sub-directories of com.mojang used by the "development" target
DEVELOPMENT_BP_DIRNAME: str = "development_behavior_packs"
DEVELOPMENT_RP_DIRNAME: str = "development_resource_packs"

#: Sub-directories of a world used by the "world" target
WORLD_BP_DIRNAME: str = "behavior_packs"
WORLD_RP_DIRNAME: str = "resource_packs"

#: Directory of com.mojang holding installed worlds
WORLDS_DIRNAME: str = "minecraftWorlds"

#: File inside a world directory holding its display name
WORLD_NAME_FILENAME: str = "levelname.txt"

#: Location of com.mojang below LOCALAPPDATA on Windows
UWP_COM_MOJANG_RELPATH: tuple[str, ...] = (
    "Packages",
    "Microsoft.MinecraftUWP_8wekyb3d8bbwe",
    "LocalState",
    "games",
    "com.mojang",
)
