"""Shared fixtures for ibuild unit tests."""

from pathlib import Path

import pytest

from ibuild.config import AppConfig, AppleConfig, Config, Metadata, PlatformMetadata
from ibuild.env import Env


@pytest.fixture
def env(tmp_path):
    """Minimal explicit environment rooted in a temp HOME."""
    return Env({"HOME": str(tmp_path / "home"), "PATH": "/usr/bin:/bin"})


@pytest.fixture
def config(tmp_path):
    """Config for a project at tmp_path."""
    return Config(
        app=AppConfig(
            name="hello-world",
            stylized_name="Hello World",
            domain="example.com",
            root_dir=tmp_path,
        ),
        apple=AppleConfig(development_team="ABCDE12345"),
    )


@pytest.fixture
def metadata():
    return Metadata(
        supported=True,
        ios=PlatformMetadata(features=["metal"], frameworks=["Metal"], libraries=["z"]),
        macos=PlatformMetadata(features=["desktop"]),
    )


@pytest.fixture
def initialized_project(tmp_path, monkeypatch):
    """A project dir with mobile.ini and a generated Xcode project dir; cwd is the project."""
    (tmp_path / "mobile.ini").write_text(
        "[app]\nname = hello-world\n\n[apple]\ndevelopment-team = ABCDE12345\n"
    )
    (tmp_path / "gen" / "apple").mkdir(parents=True)
    monkeypatch.chdir(tmp_path)
    return Path(tmp_path)


@pytest.fixture
def sdk_layout(tmp_path):
    """Xcode-like Platforms tree; returns (ios_sdk_root, macos_sdk_root)."""
    platforms = tmp_path / "Xcode.app" / "Contents" / "Developer" / "Platforms"
    ios_sdk = platforms / "iPhoneOS.platform" / "Developer" / "SDKs" / "iPhoneOS.sdk"
    macos_sdk = platforms / "MacOSX.platform" / "Developer" / "SDKs" / "MacOSX.sdk"
    (ios_sdk / "usr" / "include").mkdir(parents=True)
    (macos_sdk / "usr" / "include").mkdir(parents=True)
    return ios_sdk, macos_sdk
