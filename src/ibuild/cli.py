"""
Command-line interface for ibuild.

This module provides the `ibuild` CLI tool for building the Apple side of
a cross-platform Rust mobile project.
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from ibuild import __version__
from ibuild.build import call_for_targets_with_fallback, name_list, synthesize
from ibuild.build.command_runner import CommandError
from ibuild.build.target import DEFAULT_KEY, Target
from ibuild.cli_utils import (
    ErrorFormatter,
    configure_logging,
    macos_from_platform,
    split_arches,
)
from ibuild.config import Config, Metadata, load_or_generate
from ibuild.deploy import DeviceResolver, choose_device, device_list, list_display_only
from ibuild.env import Env, cargo_bin_dir
from ibuild.errors import (
    DeviceListError,
    IBuildError,
    ListFailed,
    OpenFailed,
    ProjectDirAbsent,
)
from ibuild.opts import NoiseLevel, Profile
from ibuild.os_utils import open_file_with
from ibuild.project import UNSUPPORTED_MESSAGE, exec_init

VISIBLE_COMMANDS = ["init", "open", "check", "build", "archive", "run", "list"]


@dataclass
class GlobalFlags:
    """Flags accepted before any command."""

    noise_level: NoiseLevel = NoiseLevel.POLITE
    non_interactive: bool = False


@dataclass
class Context:
    """Everything a command needs besides its own arguments."""

    flags: GlobalFlags
    env: Env
    root_dir: Path = field(default_factory=Path.cwd)

    def device_resolver(self) -> DeviceResolver:
        return DeviceResolver(
            lambda: device_list(self.env),
            choose_device,
            non_interactive=self.flags.non_interactive,
        )


@dataclass
class XcodeScriptArgs:
    """Arguments for the hidden xcode-script command (values come from Xcode)."""

    macos: bool
    sdk_root: Path
    profile: Profile
    force_color: bool
    arches: List[str]


def with_config(ctx: Context) -> Config:
    config, _origin = load_or_generate(ctx.root_dir, ctx.flags.non_interactive)
    return config


def with_config_and_metadata(ctx: Context) -> Tuple[Config, Metadata]:
    config = with_config(ctx)
    return config, Metadata.load(config.app.root_dir)


def ensure_init(config: Config) -> None:
    """Raise ProjectDirAbsent unless `ibuild init` has been run."""
    if not config.project_dir_exists():
        raise ProjectDirAbsent(config.project_dir())


def open_in_xcode(config: Config, env: Env) -> None:
    try:
        open_file_with("Xcode", config.project_dir(), env)
    except CommandError as e:
        raise OpenFailed("", e) from e


def init_command(ctx: Context, open_in_editor: bool, skip_dev_tools: bool) -> None:
    """Create (or refresh) the Xcode project in the current directory.

    Examples:
        ibuild init                   # Generate mobile.ini and the Xcode project
        ibuild init --open            # ...then open it in Xcode
        ibuild -y init                # Never prompt
    """
    config = exec_init(
        ctx.root_dir,
        ctx.env,
        non_interactive=ctx.flags.non_interactive,
        skip_dev_tools=skip_dev_tools,
    )
    if open_in_editor and config.project_dir_exists():
        open_in_xcode(config, ctx.env)


def open_command(ctx: Context) -> None:
    config = with_config(ctx)
    ensure_init(config)
    open_in_xcode(config, ctx.env)


def check_command(ctx: Context, targets: List[str]) -> None:
    """Check that the code compiles for the selected targets.

    Examples:
        ibuild check                  # Connected device's target, else all
        ibuild check x86_64           # Simulator only
    """
    config, metadata = with_config_and_metadata(ctx)
    noise_level = ctx.flags.noise_level

    def check(target: Target) -> None:
        print(f"Checking target {target.name}...")
        target.check(config, metadata, ctx.env, noise_level)

    call_for_targets_with_fallback(targets, True, ctx.device_resolver().detect_target_ok, check)
    ErrorFormatter.print_success("Check successful!")


def build_command(ctx: Context, targets: List[str], profile: Profile) -> None:
    """Build the app for the selected targets.

    Examples:
        ibuild build                  # Connected device's target, else all
        ibuild build aarch64 x86_64   # Explicit targets, in order
        ibuild build --release        # Release profile
    """
    config = with_config(ctx)
    ensure_init(config)
    noise_level = ctx.flags.noise_level

    def build(target: Target) -> None:
        print(f"Building target {target.name} ({profile.value})...")
        target.build(config, ctx.env, noise_level, profile)

    call_for_targets_with_fallback(targets, True, ctx.device_resolver().detect_target_ok, build)
    ErrorFormatter.print_success("Build successful!")


def archive_command(ctx: Context, targets: List[str], profile: Profile) -> None:
    """Build and archive the app for the selected targets."""
    config = with_config(ctx)
    ensure_init(config)
    noise_level = ctx.flags.noise_level

    def archive(target: Target) -> None:
        print(f"Archiving target {target.name} ({profile.value})...")
        target.build(config, ctx.env, noise_level, profile)
        target.archive(config, ctx.env, noise_level, profile)

    call_for_targets_with_fallback(targets, True, ctx.device_resolver().detect_target_ok, archive)
    ErrorFormatter.print_success(f"Archived to {config.archive_path()}")


def run_command(ctx: Context, profile: Profile) -> None:
    """Deploy and launch the app on a connected device."""
    config = with_config(ctx)
    ensure_init(config)
    device = ctx.device_resolver().resolve_device()
    device.run(
        config,
        ctx.env,
        ctx.flags.noise_level,
        ctx.flags.non_interactive,
        profile,
    )


def list_command(ctx: Context) -> None:
    try:
        devices = device_list(ctx.env)
    except DeviceListError as e:
        raise ListFailed(e) from e
    list_display_only(devices)


def xcode_script_command(ctx: Context, args: XcodeScriptArgs) -> None:
    """Compile the Rust static library from inside an Xcode build phase."""
    config, metadata = with_config_and_metadata(ctx)
    if not metadata.supported:
        print(UNSUPPORTED_MESSAGE.format(action="Skipping Rust compilation"))
        return

    # Xcode's PATH lacks the user's profile additions, so add cargo's bin dir
    env = ctx.env.prepend_to_path(cargo_bin_dir(ctx.env))

    pairs = synthesize(args.sdk_root, args.arches, for_host_platform=args.macos)
    for target, overlay in pairs:
        target.compile_lib(
            config,
            metadata,
            ctx.flags.noise_level,
            args.force_color,
            args.profile,
            env,
            overlay,
        )


def _add_targets_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "targets",
        nargs="*",
        default=[],
        help=f"Targets to act on: {', '.join(name_list())} (default: {DEFAULT_KEY}, "
        + "or the connected device's target)",
    )


def _add_release_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--release",
        action="store_true",
        help="Build with the release profile",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ibuild",
        description="ibuild - Apple build orchestration for Rust mobile projects",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ibuild {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Vomit out extensive logging (-vv for more)",
    )
    parser.add_argument(
        "-y",
        "--non-interactive",
        action="store_true",
        help="Never prompt for input",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        metavar="{" + ",".join(VISIBLE_COMMANDS) + "}",
        help="Command to run",
    )

    # Init command
    init_parser = subparsers.add_parser(
        "init",
        help="Creates a new project in the current working directory",
    )
    init_parser.add_argument(
        "--open",
        action="store_true",
        help="Open in Xcode",
    )
    init_parser.add_argument(
        "--skip-dev-tools",
        action="store_true",
        help="Don't check for xcodegen and ios-deploy",
    )

    subparsers.add_parser("open", help="Open project in Xcode")

    check_parser = subparsers.add_parser("check", help="Checks if code compiles for target(s)")
    _add_targets_argument(check_parser)

    build_parser_ = subparsers.add_parser("build", help="Builds static libraries for target(s)")
    _add_targets_argument(build_parser_)
    _add_release_argument(build_parser_)

    archive_parser = subparsers.add_parser("archive", help="Builds and archives for target(s)")
    _add_targets_argument(archive_parser)
    _add_release_argument(archive_parser)

    run_parser = subparsers.add_parser("run", help="Deploys IPA to connected device")
    _add_release_argument(run_parser)

    subparsers.add_parser("list", help="Lists connected devices")

    # Hidden: only Xcode should call this
    xcode_parser = subparsers.add_parser(
        "xcode-script",
        description="Compiles static lib (should only be called by Xcode!)",
    )
    xcode_parser.add_argument(
        "--platform",
        required=True,
        help="Value of `PLATFORM_DISPLAY_NAME` env var",
    )
    xcode_parser.add_argument(
        "--sdk-root",
        required=True,
        type=Path,
        help="Value of `SDKROOT` env var",
    )
    xcode_parser.add_argument(
        "--configuration",
        required=True,
        help="Value of `CONFIGURATION` env var",
    )
    xcode_parser.add_argument(
        "--force-color",
        action="store_true",
        help="Value of `FORCE_COLOR` env var",
    )
    xcode_parser.add_argument(
        "arches",
        nargs="+",
        metavar="ARCHS",
        help="Value of `ARCHS` env var",
    )

    return parser


def exec_command(ctx: Context, parsed_args: argparse.Namespace) -> None:
    """Dispatch a parsed command. Raises IBuildError on failure."""
    command = parsed_args.command
    if command == "init":
        init_command(ctx, parsed_args.open, parsed_args.skip_dev_tools)
    elif command == "open":
        open_command(ctx)
    elif command == "check":
        check_command(ctx, parsed_args.targets)
    elif command == "build":
        build_command(ctx, parsed_args.targets, Profile.from_release_flag(parsed_args.release))
    elif command == "archive":
        archive_command(ctx, parsed_args.targets, Profile.from_release_flag(parsed_args.release))
    elif command == "run":
        run_command(ctx, Profile.from_release_flag(parsed_args.release))
    elif command == "list":
        list_command(ctx)
    elif command == "xcode-script":
        xcode_script_command(
            ctx,
            XcodeScriptArgs(
                macos=macos_from_platform(parsed_args.platform),
                sdk_root=parsed_args.sdk_root,
                profile=Profile.from_configuration(parsed_args.configuration),
                force_color=parsed_args.force_color,
                arches=split_arches(parsed_args.arches),
            ),
        )


def main() -> None:
    """ibuild - Apple build orchestration for Rust mobile projects."""
    parser = build_parser()
    parsed_args = parser.parse_args()

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    flags = GlobalFlags(
        noise_level=NoiseLevel.from_occurrences(parsed_args.verbose),
        non_interactive=parsed_args.non_interactive,
    )
    configure_logging(flags.noise_level)

    try:
        ctx = Context(flags=flags, env=Env.new())
        exec_command(ctx, parsed_args)
    except IBuildError as e:
        ErrorFormatter.print_report(e.report())
        sys.exit(1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, verbose=not flags.noise_level.polite)

    sys.exit(0)


if __name__ == "__main__":
    main()
