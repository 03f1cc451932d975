"""
Cargo.toml metadata loader.

Per-platform build settings live in the app's Cargo.toml:

    [package.metadata.cargo-apple]
    supported = true

    [package.metadata.cargo-apple.ios]
    features = ["metal"]
    frameworks = ["Metal", "QuartzCore"]
    libraries = ["z"]

    [package.metadata.cargo-apple.macos]
    features = ["metal"]

A missing Cargo.toml or a missing table yields the defaults.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from ibuild.errors import MetadataError

METADATA_KEY = "cargo-apple"


@dataclass(frozen=True)
class PlatformMetadata:
    """Settings for one Apple platform (iOS or macOS)."""

    features: List[str] = field(default_factory=list)
    frameworks: List[str] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)

    @classmethod
    def from_table(cls, table: Dict[str, Any], where: str) -> "PlatformMetadata":
        if not isinstance(table, dict):
            raise MetadataError(f"{where} must be a table")
        values = {}
        for key in ("features", "frameworks", "libraries"):
            value = table.get(key, [])
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise MetadataError(f"{where}.{key} must be a list of strings")
            values[key] = value
        return cls(**values)


@dataclass(frozen=True)
class Metadata:
    """Apple metadata for the app.

    `supported = false` opts the crate out of Apple builds: `init` skips
    project generation and `xcode-script` compiles nothing.
    """

    supported: bool = True
    ios: PlatformMetadata = field(default_factory=PlatformMetadata)
    macos: PlatformMetadata = field(default_factory=PlatformMetadata)

    @classmethod
    def load(cls, app_root_dir: Path) -> "Metadata":
        """Load metadata from ``<app_root_dir>/Cargo.toml``.

        Raises:
            MetadataError: If Cargo.toml can't be read or is malformed
        """
        manifest = Path(app_root_dir) / "Cargo.toml"
        if not manifest.exists():
            return cls()

        try:
            with open(manifest, "rb") as f:
                data = tomllib.load(f)
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            raise MetadataError(f"Failed to read {manifest}", e) from e

        table = data
        path = []
        for key in ("package", "metadata", METADATA_KEY):
            path.append(key)
            table = table.get(key, {})
            if not isinstance(table, dict):
                raise MetadataError(f"{manifest}: {'.'.join(path)} must be a table")

        where = f"{manifest}: package.metadata.{METADATA_KEY}"
        supported = table.get("supported", True)
        if not isinstance(supported, bool):
            raise MetadataError(f"{where}.supported must be a boolean")

        return cls(
            supported=supported,
            ios=PlatformMetadata.from_table(table.get("ios", {}), f"{where}.ios"),
            macos=PlatformMetadata.from_table(table.get("macos", {}), f"{where}.macos"),
        )
