"""Project initialization.

`ibuild init` generates (or loads) mobile.ini, then writes an XcodeGen
project spec and the export options into the Apple project directory and
runs `xcodegen` to produce the .xcodeproj that the build stages drive.

Layout produced under the project dir (default: gen/apple):
    project.json          XcodeGen spec
    ExportOptions.plist   Used by `xcodebuild -exportArchive`
    Sources/              App sources (created empty if missing)
    <name>.xcodeproj      Generated by xcodegen
"""

import json
import logging
import plistlib
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ibuild.build.command_runner import CommandError, CommandRunner
from ibuild.config import Config, Metadata, load_or_generate
from ibuild.env import Env
from ibuild.errors import ConfigError, InitFailed, MetadataError

# Tools the generated project depends on, with install hints
DEV_TOOLS = {
    "xcodegen": "brew install xcodegen",
    "ios-deploy": "brew install ios-deploy",
}

SPEC_FILE_NAME = "project.json"

UNSUPPORTED_MESSAGE = "{action}, since Apple is marked as unsupported in your Cargo.toml metadata"

# Xcode build phase; Xcode expands the variables before running it
XCODE_SCRIPT = (
    "ibuild -v xcode-script --platform ${PLATFORM_DISPLAY_NAME:?} "
    + "--sdk-root ${SDKROOT:?} --configuration ${CONFIGURATION:?} "
    + "${FORCE_COLOR} ${ARCHS:?}"
)


def lib_name(app_name: str) -> str:
    return app_name.replace("-", "_")


def check_dev_tools(env: Env) -> None:
    """Make sure the external tools ibuild drives are on PATH.

    Raises:
        InitFailed: Naming the first missing tool
    """
    for tool, hint in DEV_TOOLS.items():
        if shutil.which(tool, path=env.path) is None:
            raise InitFailed(f"`{tool}` wasn't found on PATH; install it with `{hint}`")


def _sdk_dependencies(metadata: Metadata) -> List[Dict[str, Any]]:
    deps = [{"sdk": f"{framework}.framework"} for framework in metadata.ios.frameworks]
    deps.extend({"sdk": f"lib{library}.tbd"} for library in metadata.ios.libraries)
    return deps


def project_spec(config: Config, metadata: Metadata) -> Dict[str, Any]:
    """Build the XcodeGen spec for the app."""
    name = config.app.name
    # Cargo's target dir, relative to the default gen/apple project dir
    target_dir = "$(PROJECT_DIR)/../../target"
    settings = {
        "DEVELOPMENT_TEAM": config.apple.development_team,
        "ENABLE_BITCODE": False,
        "OTHER_LDFLAGS": f"$(inherited) -l{lib_name(name)}",
        "LIBRARY_SEARCH_PATHS[arch=arm64]": f"$(inherited) {target_dir}/aarch64-apple-ios/$(CONFIGURATION)",
        "LIBRARY_SEARCH_PATHS[arch=x86_64]": f"$(inherited) {target_dir}/x86_64-apple-ios/$(CONFIGURATION)",
    }
    return {
        "name": name,
        "options": {
            "bundleIdPrefix": config.app.bundle_id.rsplit(".", 1)[0],
            "deploymentTarget": {
                "iOS": config.apple.ios_version,
                "macOS": config.apple.macos_version,
            },
        },
        "configs": {"debug": "debug", "release": "release"},
        "settings": {"base": settings},
        "targets": {
            config.scheme(): {
                "type": "application",
                "platform": "iOS",
                "sources": ["Sources"],
                "info": {
                    "path": "Info.plist",
                    "properties": {
                        "CFBundleDisplayName": config.app.stylized_name,
                        "UILaunchStoryboardName": "",
                    },
                },
                "dependencies": _sdk_dependencies(metadata),
                "preBuildScripts": [
                    {
                        "name": "Build Rust Code",
                        "script": XCODE_SCRIPT,
                        "basedOnDependencyAnalysis": False,
                    }
                ],
            }
        },
    }


def export_options(config: Config) -> Dict[str, Any]:
    options: Dict[str, Any] = {"method": "development"}
    if config.apple.development_team:
        options["teamID"] = config.apple.development_team
    return options


def write_project_files(config: Config, metadata: Metadata) -> Path:
    """Write project.json, ExportOptions.plist and Sources/.

    Returns:
        Path to the written XcodeGen spec

    Raises:
        InitFailed: If any file can't be written
    """
    project_dir = config.project_dir()
    spec_path = project_dir / SPEC_FILE_NAME
    try:
        (project_dir / "Sources").mkdir(parents=True, exist_ok=True)
        with open(spec_path, "w", encoding="utf-8") as f:
            json.dump(project_spec(config, metadata), f, indent=2)
        with open(config.export_plist_path(), "wb") as f:
            plistlib.dump(export_options(config), f)
    except OSError as e:
        raise InitFailed(f"Failed to write project files to {project_dir}", e) from e
    logging.info(f"Wrote {spec_path}")
    return spec_path


def exec_init(
    root_dir: Path,
    env: Env,
    non_interactive: bool,
    skip_dev_tools: bool = False,
    prompt_fn: Optional[Callable[[str], str]] = None,
) -> Config:
    """Initialize the Apple project in ``root_dir``.

    Args:
        root_dir: Project root
        env: Base environment
        non_interactive: Never prompt
        skip_dev_tools: Don't check for xcodegen/ios-deploy
        prompt_fn: Line reader for config prompts

    Returns:
        The loaded or generated Config

    Raises:
        InitFailed: If any step fails (config and metadata failures included)
    """
    try:
        config, origin = load_or_generate(root_dir, non_interactive, prompt_fn)
        metadata = Metadata.load(config.app.root_dir)
    except (ConfigError, MetadataError) as e:
        raise InitFailed("", e) from e
    logging.info(f"Config origin: {origin.value}")

    if not metadata.supported:
        print(UNSUPPORTED_MESSAGE.format(action="Skipping Apple init"))
        return config

    if not skip_dev_tools:
        check_dev_tools(env)

    spec_path = write_project_files(config, metadata)
    try:
        CommandRunner(env).run(
            ["xcodegen", "generate", "--spec", spec_path, "--project", config.project_dir()],
            cwd=config.project_dir(),
        )
    except CommandError as e:
        raise InitFailed("Failed to generate Xcode project", e) from e

    print(f"Generated Xcode project in {config.project_dir()}")
    return config
