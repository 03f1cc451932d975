"""Apple build targets and the per-target pipeline stages.

The registry is static: two iOS targets selectable by key (a device
target and a simulator target) and the macOS host target, which is only
used when Xcode builds for the Mac and is never selectable from the CLI.

Each stage shells out to the external toolchain via CommandRunner and
wraps the resulting CommandError in the stage's own error type:

    check       -> cargo check                 (CheckError)
    build       -> xcodebuild build            (BuildError)
    archive     -> xcodebuild archive          (ArchiveError)
    export      -> xcodebuild -exportArchive   (ExportError)
    compile_lib -> cargo build                 (CompileLibError)
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from ibuild.build.command_runner import CommandError, CommandRunner
from ibuild.config import Config, Metadata, PlatformMetadata
from ibuild.env import Env
from ibuild.errors import (
    ArchiveError,
    BuildError,
    CheckError,
    CompileLibError,
    ExportError,
    TargetInvalid,
)
from ibuild.opts import NoiseLevel, Profile


@dataclass(frozen=True)
class Target:
    """One compilation target.

    Attributes:
        name: Key used on the command line (e.g., "aarch64")
        triple: Rust target triple (e.g., "aarch64-apple-ios")
        arch: Xcode architecture name (e.g., "arm64")
        sdk: Xcode SDK name (e.g., "iphoneos")
        is_macos: True for the macOS host target
    """

    name: str
    triple: str
    arch: str
    sdk: str
    is_macos: bool = False

    def _platform_metadata(self, metadata: Metadata) -> PlatformMetadata:
        return metadata.macos if self.is_macos else metadata.ios

    def _cargo_args(self, subcommand: str, metadata: Metadata, noise_level: NoiseLevel) -> List[str]:
        args = ["cargo", subcommand, "--target", self.triple]
        features = self._platform_metadata(metadata).features
        if features:
            args.extend(["--features", " ".join(features)])
        if noise_level is NoiseLevel.LOUD_AND_PROUD:
            args.append("-v")
        elif noise_level.pedantic:
            args.append("-vv")
        return args

    def _xcodebuild_args(self, config: Config, noise_level: NoiseLevel, profile: Profile) -> List[str]:
        args = [
            "xcodebuild",
            "-scheme",
            config.scheme(),
            "-workspace",
            str(config.workspace_path()),
            "-sdk",
            self.sdk,
            "-configuration",
            profile.value,
            "-arch",
            self.arch,
            "-allowProvisioningUpdates",
        ]
        if noise_level.polite:
            args.append("-quiet")
        return args

    def check(self, config: Config, metadata: Metadata, env: Env, noise_level: NoiseLevel) -> None:
        """Type-check the crate for this target without producing artifacts.

        Raises:
            CheckError: If `cargo check` fails
        """
        try:
            CommandRunner(env).run(
                self._cargo_args("check", metadata, noise_level),
                cwd=config.app.root_dir,
            )
        except CommandError as e:
            raise CheckError(self.name, e) from e

    def build(self, config: Config, env: Env, noise_level: NoiseLevel, profile: Profile) -> None:
        """Build the Xcode project for this target.

        Raises:
            BuildError: If `xcodebuild build` fails
        """
        args = self._xcodebuild_args(config, noise_level, profile)
        args.append("build")
        try:
            CommandRunner(env).run(args, cwd=config.project_dir())
        except CommandError as e:
            raise BuildError(self.name, e) from e

    def archive(self, config: Config, env: Env, noise_level: NoiseLevel, profile: Profile) -> None:
        """Archive an already built project.

        Callers run :meth:`build` first; nothing is assumed to be cached
        between invocations.

        Raises:
            ArchiveError: If `xcodebuild archive` fails
        """
        args = self._xcodebuild_args(config, noise_level, profile)
        args.extend(["archive", "-archivePath", str(config.archive_path())])
        try:
            CommandRunner(env).run(args, cwd=config.project_dir())
        except CommandError as e:
            raise ArchiveError(self.name, e) from e

    def export(self, config: Config, env: Env, noise_level: NoiseLevel) -> None:
        """Export the archive to an .ipa using ExportOptions.plist.

        Raises:
            ExportError: If `xcodebuild -exportArchive` fails
        """
        args = [
            "xcodebuild",
            "-exportArchive",
            "-archivePath",
            str(config.archive_path()),
            "-exportOptionsPlist",
            str(config.export_plist_path()),
            "-exportPath",
            str(config.export_dir()),
            "-allowProvisioningUpdates",
        ]
        if noise_level.polite:
            args.append("-quiet")
        try:
            CommandRunner(env).run(args, cwd=config.project_dir())
        except CommandError as e:
            raise ExportError(self.name, e) from e

    def compile_lib(
        self,
        config: Config,
        metadata: Metadata,
        noise_level: NoiseLevel,
        force_color: bool,
        profile: Profile,
        env: Env,
        overlay: Mapping[str, str],
    ) -> None:
        """Compile the Rust static library for Xcode.

        Args:
            config: Project configuration
            metadata: Cargo.toml metadata (features)
            noise_level: Verbosity forwarded to cargo
            force_color: Pass `--color always` (Xcode's log isn't a TTY)
            profile: Debug or release
            env: Base environment
            overlay: Per-architecture variables merged over ``env``

        Raises:
            CompileLibError: If `cargo build` fails
        """
        args = self._cargo_args("build", metadata, noise_level)
        args.append("--lib")
        if profile.is_release:
            args.append("--release")
        if force_color:
            args.extend(["--color", "always"])
        try:
            CommandRunner(env).run(args, overlay=overlay, cwd=config.app.root_dir)
        except CommandError as e:
            raise CompileLibError(self.name, e) from e


DEFAULT_KEY = "aarch64"

TARGETS: Tuple[Target, ...] = (
    Target(name="aarch64", triple="aarch64-apple-ios", arch="arm64", sdk="iphoneos"),
    Target(name="x86_64", triple="x86_64-apple-ios", arch="x86_64", sdk="iphonesimulator"),
)

MACOS_TARGET = Target(
    name="x86_64-apple-darwin",
    triple="x86_64-apple-darwin",
    arch="x86_64",
    sdk="macosx",
    is_macos=True,
)

# Xcode/ios-deploy architecture names -> target key
ARCH_TO_KEY = {
    "arm64": "aarch64",
    "arm64e": "aarch64",
    "x86_64": "x86_64",
}


def all_targets() -> List[Target]:
    """All selectable targets in canonical order."""
    return list(TARGETS)


def name_list() -> List[str]:
    return [target.name for target in TARGETS]


def default_key() -> str:
    return DEFAULT_KEY


def lookup(key: str) -> Target:
    """Find a target by its CLI key.

    Raises:
        TargetInvalid: If no target has that key
    """
    for target in TARGETS:
        if target.name == key:
            return target
    raise TargetInvalid(key, name_list())


def for_arch(arch: str) -> Optional[Target]:
    """Find the target for an architecture name as Xcode spells it."""
    key = ARCH_TO_KEY.get(arch)
    if key is None:
        return None
    return lookup(key)


def macos() -> Target:
    return MACOS_TARGET
