"""Error taxonomy for ibuild.

Every failure an ibuild command can hit is one of the exception classes
below. Each class owns its triggering cause and knows how to turn itself
into a single user-facing :class:`Report`; nothing is downgraded to a
generic error on the way out.

Usage:
    try:
        target.build(config, env, noise_level, profile)
    except CommandError as e:
        raise BuildError(target.name, e) from e
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


@dataclass
class Report:
    """User-facing description of a failure.

    Attributes:
        kind: "error" or "action_request"
        msg: Short headline
        details: Underlying cause, verbatim
    """

    kind: str
    msg: str
    details: str

    @classmethod
    def error(cls, msg: str, details: object) -> "Report":
        return cls(kind="error", msg=msg, details=str(details))

    @classmethod
    def action_request(cls, msg: str, details: object) -> "Report":
        return cls(kind="action_request", msg=msg, details=str(details))

    def __str__(self) -> str:
        return f"{self.msg}: {self.details}" if self.details else self.msg


class IBuildError(Exception):
    """Base class for every reportable ibuild failure."""

    title = "Error"

    def __init__(self, details: str = "", cause: Optional[BaseException] = None):
        super().__init__(details or str(cause or ""))
        self.details = details
        self.cause = cause

    def report(self) -> Report:
        details = self.details
        if self.cause is not None:
            details = f"{details}: {self.cause}" if details else str(self.cause)
        return Report.error(self.title, details)


# Host environment


class EnvInitFailed(IBuildError):
    """A required variable was missing from the inherited environment."""

    title = "Failed to initialize environment"

    def __init__(self, var_name: str):
        super().__init__(f"`{var_name}` environment variable isn't set")
        self.var_name = var_name


class NoHomeDir(IBuildError):
    title = "Failed to load cargo env profile"

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__("Couldn't determine home directory", cause)


# Devices


class DeviceListError(IBuildError):
    """Enumerating connected devices failed."""

    title = "Failed to request device list from `ios-deploy`"


class ListFailed(IBuildError):
    title = "Failed to list connected devices"

    def __init__(self, cause: DeviceListError):
        super().__init__("", cause)


class PromptError(IBuildError):
    """Picking a device failed: enumeration error, no device, ambiguity or cancellation."""

    title = "Failed to prompt for iOS device"


# User input


class TargetInvalid(IBuildError):
    title = "Specified target was invalid"

    def __init__(self, name: str, valid_names: List[str]):
        super().__init__(
            f"{name!r} isn't a valid target name. Valid names: {', '.join(valid_names)}"
        )
        self.name = name
        self.valid_names = valid_names


# Configuration


class ConfigError(IBuildError):
    title = "Failed to load or generate config"


class MetadataError(IBuildError):
    title = "Failed to load metadata from `Cargo.toml`"


class ProjectDirAbsent(IBuildError):
    """The Xcode project hasn't been generated yet."""

    title = "Please run `ibuild init` and try again!"

    def __init__(self, project_dir: Path):
        super().__init__(f"Xcode project directory {str(project_dir)!r} doesn't exist.")
        self.project_dir = project_dir

    def report(self) -> Report:
        return Report.action_request(self.title, self.details)


class InitFailed(IBuildError):
    title = "Failed to initialize project"


class OpenFailed(IBuildError):
    title = "Failed to open project in Xcode"


# Pipeline stages


class StageError(IBuildError):
    """A pipeline stage failed for one target; ``cause`` is the external failure."""

    def __init__(self, target_name: str, cause: BaseException):
        super().__init__(f"target {target_name!r}", cause)
        self.target_name = target_name


class CheckError(StageError):
    title = "Failed to run `cargo check`"


class BuildError(StageError):
    title = "Failed to build via `xcodebuild`"


class ArchiveError(StageError):
    title = "Failed to archive via `xcodebuild`"


class ExportError(StageError):
    title = "Failed to export archive via `xcodebuild`"


class CompileLibError(StageError):
    title = "Failed to compile static library via `cargo build`"


class RunError(IBuildError):
    """Deploying to a device failed; ``cause`` is the step that failed."""

    title = "Failed to run app on device"


# Xcode environment synthesis


class SdkRootInvalid(IBuildError):
    title = "SDK root provided by Xcode was invalid"

    def __init__(self, sdk_root: Path):
        super().__init__(f"{str(sdk_root)!r} doesn't exist or isn't a directory")
        self.sdk_root = sdk_root


class IncludeDirInvalid(IBuildError):
    title = "Include dir was invalid"

    def __init__(self, include_dir: Path):
        super().__init__(f"{str(include_dir)!r} doesn't exist or isn't a directory")
        self.include_dir = include_dir


class MacosSdkRootInvalid(IBuildError):
    title = "macOS SDK root was invalid"

    def __init__(self, macos_sdk_root: Path):
        super().__init__(f"{str(macos_sdk_root)!r} doesn't exist or isn't a directory")
        self.macos_sdk_root = macos_sdk_root


class ArchInvalid(IBuildError):
    title = "Arch specified by Xcode was invalid"

    def __init__(self, arch: str):
        super().__init__(f"{arch!r} isn't a known arch")
        self.arch = arch
