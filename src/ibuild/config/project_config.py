"""
mobile.ini configuration loader.

This module loads the project configuration from ``mobile.ini`` at the
project root, generating it on first use.

Example mobile.ini:
    [app]
    name = hello-world
    stylized-name = Hello World
    domain = example.com

    [apple]
    development-team = ABCDE12345
    project-dir = gen/apple
    ios-version = 13.0

Usage:
    config, origin = load_or_generate(Path("."), non_interactive=False)
    if not config.project_dir_exists():
        ...
"""

import configparser
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple

from ibuild.errors import ConfigError

CONFIG_FILE_NAME = "mobile.ini"

DEFAULT_DOMAIN = "example.com"
DEFAULT_PROJECT_DIR = "gen/apple"
DEFAULT_IOS_VERSION = "13.0"
DEFAULT_MACOS_VERSION = "11.0"

APP_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")


class ConfigOrigin(Enum):
    """Where the loaded configuration came from."""

    FRESH_PROMPT = "fresh_prompt"
    FRESH_NO_PROMPT = "fresh_no_prompt"
    LOADED = "loaded"

    @property
    def freshly_minted(self) -> bool:
        return self is not ConfigOrigin.LOADED


@dataclass(frozen=True)
class AppConfig:
    """The `[app]` section."""

    name: str
    stylized_name: str
    domain: str
    root_dir: Path

    @property
    def bundle_id(self) -> str:
        reversed_domain = ".".join(reversed(self.domain.split(".")))
        return f"{reversed_domain}.{self.name}"


@dataclass(frozen=True)
class AppleConfig:
    """The `[apple]` section."""

    development_team: str = ""
    project_dir: str = DEFAULT_PROJECT_DIR
    ios_version: str = DEFAULT_IOS_VERSION
    macos_version: str = DEFAULT_MACOS_VERSION


@dataclass(frozen=True)
class Config:
    """Project configuration plus the Xcode paths derived from it."""

    app: AppConfig
    apple: AppleConfig

    def project_dir(self) -> Path:
        return self.app.root_dir / self.apple.project_dir

    def project_dir_exists(self) -> bool:
        return self.project_dir().is_dir()

    def scheme(self) -> str:
        return f"{self.app.name}_iOS"

    def xcodeproj_path(self) -> Path:
        return self.project_dir() / f"{self.app.name}.xcodeproj"

    def workspace_path(self) -> Path:
        return self.xcodeproj_path() / "project.xcworkspace"

    def archive_dir(self) -> Path:
        return self.project_dir() / "build"

    def archive_path(self) -> Path:
        return self.archive_dir() / f"{self.app.name}.xcarchive"

    def export_dir(self) -> Path:
        return self.project_dir() / "build"

    def export_plist_path(self) -> Path:
        return self.project_dir() / "ExportOptions.plist"

    def ipa_path(self) -> Path:
        return self.export_dir() / f"{self.app.stylized_name}.ipa"

    def app_path(self) -> Path:
        return self.export_dir() / "Payload" / f"{self.app.stylized_name}.app"


def default_app_name(root_dir: Path) -> str:
    """Derive an app name from the project directory name."""
    name = re.sub(r"[^a-zA-Z0-9_-]+", "-", root_dir.resolve().name).strip("-_")
    if not name or not name[0].isalpha():
        name = f"app-{name}" if name else "app"
    return name.lower()


def stylize(name: str) -> str:
    """Turn `hello-world` into `Hello World`."""
    return " ".join(part.capitalize() for part in re.split(r"[-_]+", name) if part)


def _validate_app_name(name: str, ini_path: Path) -> None:
    if not APP_NAME_PATTERN.match(name):
        raise ConfigError(
            f"{ini_path}: app name {name!r} must start with a letter and only "
            + "contain letters, digits, '-' and '_'"
        )


def load(root_dir: Path) -> Config:
    """Load an existing mobile.ini.

    Args:
        root_dir: Project root containing mobile.ini

    Returns:
        Parsed Config

    Raises:
        ConfigError: If the file is missing, unparsable, or invalid
    """
    ini_path = root_dir / CONFIG_FILE_NAME
    if not ini_path.exists():
        raise ConfigError(f"Configuration file not found: {ini_path}")

    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(ini_path, encoding="utf-8")
    except (configparser.Error, UnicodeDecodeError, OSError) as e:
        raise ConfigError(f"Failed to parse {ini_path}", e) from e

    if "app" not in parser:
        raise ConfigError(f"{ini_path}: missing [app] section")
    app_section = parser["app"]
    name = app_section.get("name", "").strip()
    if not name:
        raise ConfigError(f"{ini_path}: [app] is missing required field 'name'")
    _validate_app_name(name, ini_path)

    app = AppConfig(
        name=name,
        stylized_name=app_section.get("stylized-name", stylize(name)).strip(),
        domain=app_section.get("domain", DEFAULT_DOMAIN).strip(),
        root_dir=(root_dir / app_section.get("root-dir", ".").strip()),
    )

    apple_section = parser["apple"] if "apple" in parser else {}
    apple = AppleConfig(
        development_team=apple_section.get("development-team", "").strip(),
        project_dir=apple_section.get("project-dir", DEFAULT_PROJECT_DIR).strip(),
        ios_version=apple_section.get("ios-version", DEFAULT_IOS_VERSION).strip(),
        macos_version=apple_section.get("macos-version", DEFAULT_MACOS_VERSION).strip(),
    )
    return Config(app=app, apple=apple)


def write(config: Config, ini_path: Path) -> None:
    """Write ``config`` to ``ini_path``.

    Raises:
        ConfigError: If the file can't be written
    """
    parser = configparser.ConfigParser(interpolation=None)
    parser["app"] = {
        "name": config.app.name,
        "stylized-name": config.app.stylized_name,
        "domain": config.app.domain,
    }
    root_dir = os.path.relpath(config.app.root_dir, ini_path.parent)
    if root_dir != ".":
        parser["app"]["root-dir"] = root_dir
    parser["apple"] = {
        "development-team": config.apple.development_team,
        "project-dir": config.apple.project_dir,
        "ios-version": config.apple.ios_version,
        "macos-version": config.apple.macos_version,
    }
    try:
        with open(ini_path, "w", encoding="utf-8") as f:
            parser.write(f)
    except OSError as e:
        raise ConfigError(f"Failed to write {ini_path}", e) from e


def _ask(prompt_fn: Callable[[str], str], question: str, default: str) -> str:
    suffix = f" [{default}]" if default else ""
    try:
        answer = prompt_fn(f"{question}{suffix}: ").strip()
    except EOFError as e:
        raise ConfigError("Prompt was cancelled", e) from e
    return answer or default


def generate(
    root_dir: Path,
    non_interactive: bool,
    prompt_fn: Callable[[str], str] = input,
) -> Tuple[Config, ConfigOrigin]:
    """Generate a fresh mobile.ini, prompting for values when interactive."""
    ini_path = root_dir / CONFIG_FILE_NAME
    name = default_app_name(root_dir)
    development_team = ""

    if non_interactive:
        origin = ConfigOrigin.FRESH_NO_PROMPT
    else:
        origin = ConfigOrigin.FRESH_PROMPT
        name = _ask(prompt_fn, "App name", name)
        development_team = _ask(prompt_fn, "Apple development team ID (optional)", "")
    _validate_app_name(name, ini_path)

    config = Config(
        app=AppConfig(
            name=name,
            stylized_name=stylize(name),
            domain=DEFAULT_DOMAIN,
            root_dir=root_dir,
        ),
        apple=AppleConfig(development_team=development_team),
    )
    write(config, ini_path)
    print(f"Generated {ini_path}")
    return config, origin


def load_or_generate(
    root_dir: Path,
    non_interactive: bool,
    prompt_fn: Optional[Callable[[str], str]] = None,
) -> Tuple[Config, ConfigOrigin]:
    """Load mobile.ini, generating it first if it doesn't exist.

    Args:
        root_dir: Project root directory
        non_interactive: Never prompt; use defaults for a fresh config
        prompt_fn: Line reader used for prompts (default: ``input``)

    Returns:
        Tuple of (Config, ConfigOrigin)

    Raises:
        ConfigError: If loading or generation fails
    """
    root_dir = Path(root_dir)
    if (root_dir / CONFIG_FILE_NAME).exists():
        return load(root_dir), ConfigOrigin.LOADED
    return generate(root_dir, non_interactive, prompt_fn or input)
