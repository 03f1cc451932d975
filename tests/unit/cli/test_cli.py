"""Tests for the ibuild command line."""

import sys
from unittest.mock import patch

import pytest

from ibuild.build.command_runner import CommandError
from ibuild.build.target import Target, lookup
from ibuild.cli import build_parser, main
from ibuild.deploy.ios_deploy import Device
from ibuild.errors import BuildError, DeviceListError
from ibuild.opts import Profile


def run_main(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["ibuild", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


class TestParser:
    """Test argument parsing."""

    def test_global_flags(self):
        args = build_parser().parse_args(["-vv", "-y", "build", "x86_64", "--release"])
        assert args.verbose == 2
        assert args.non_interactive
        assert args.targets == ["x86_64"]
        assert args.release

    def test_targets_default_empty(self):
        assert build_parser().parse_args(["check"]).targets == []

    def test_xcode_script_requires_values(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["xcode-script", "arm64"])
        assert exc_info.value.code == 2

    def test_help_hides_xcode_script(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--help"])
        out = capsys.readouterr().out
        assert "build" in out
        assert "xcode-script" not in out


class TestMain:
    """Test main() end to end with external tools patched out."""

    def test_no_command_prints_help(self, monkeypatch, capsys):
        assert run_main(monkeypatch) == 0
        assert "usage:" in capsys.readouterr().out

    def test_build_invalid_target(self, monkeypatch, capsys, initialized_project):
        with patch.object(Target, "build", autospec=True) as mock_build:
            assert run_main(monkeypatch, "build", "aarch64", "armv7") == 1
        mock_build.assert_not_called()
        out = capsys.readouterr().out
        assert "Specified target was invalid" in out
        assert "'armv7'" in out

    def test_build_explicit_targets(self, monkeypatch, capsys, initialized_project):
        with patch.object(Target, "build", autospec=True) as mock_build:
            assert run_main(monkeypatch, "build", "x86_64", "aarch64", "--release") == 0
        built = [c.args[0].name for c in mock_build.call_args_list]
        assert built == ["x86_64", "aarch64"]
        assert mock_build.call_args.args[4] is Profile.RELEASE
        assert "Build successful!" in capsys.readouterr().out

    def test_build_requires_init(self, monkeypatch, capsys, tmp_path):
        (tmp_path / "mobile.ini").write_text("[app]\nname = hello-world\n")
        monkeypatch.chdir(tmp_path)
        assert run_main(monkeypatch, "build", "x86_64") == 1
        assert "Please run `ibuild init` and try again!" in capsys.readouterr().out

    def test_check_falls_back_to_all_targets(self, monkeypatch, initialized_project):
        with (
            patch("ibuild.cli.device_list", side_effect=DeviceListError("ios-deploy missing")),
            patch.object(Target, "check", autospec=True) as mock_check,
        ):
            assert run_main(monkeypatch, "check") == 0
        assert [c.args[0].name for c in mock_check.call_args_list] == ["aarch64", "x86_64"]

    def test_check_uses_single_device_target(self, monkeypatch, initialized_project, x86_device):
        with (
            patch("ibuild.cli.device_list", return_value=[x86_device]),
            patch.object(Target, "check", autospec=True) as mock_check,
        ):
            assert run_main(monkeypatch, "check") == 0
        assert [c.args[0].name for c in mock_check.call_args_list] == ["x86_64"]

    def test_archive_build_failure_skips_archive(self, monkeypatch, capsys, initialized_project):
        error = BuildError("x86_64", CommandError(["xcodebuild"], 65))
        with (
            patch.object(Target, "build", autospec=True, side_effect=error),
            patch.object(Target, "archive", autospec=True) as mock_archive,
        ):
            assert run_main(monkeypatch, "archive", "x86_64") == 1
        mock_archive.assert_not_called()
        assert "Failed to build via `xcodebuild`" in capsys.readouterr().out

    def test_run_ambiguous_non_interactive(self, monkeypatch, capsys, initialized_project, x86_device):
        second = Device(id="2", name="Other", model="iPhone", target=x86_device.target)
        with (
            patch("ibuild.cli.device_list", return_value=[x86_device, second]),
            patch.object(Device, "run") as mock_run,
        ):
            assert run_main(monkeypatch, "-y", "run") == 1
        mock_run.assert_not_called()
        assert "Failed to prompt for iOS device" in capsys.readouterr().out

    def test_list(self, monkeypatch, capsys, x86_device):
        with patch("ibuild.cli.device_list", return_value=[x86_device]):
            assert run_main(monkeypatch, "list") == 0
        assert "[0] Simulator Phone (iPhone 12)" in capsys.readouterr().out

    def test_list_failure(self, monkeypatch, capsys):
        with patch("ibuild.cli.device_list", side_effect=DeviceListError("boom")):
            assert run_main(monkeypatch, "list") == 1
        out = capsys.readouterr().out
        assert "Failed to list connected devices" in out
        assert "boom" in out

    def test_xcode_script(self, monkeypatch, initialized_project, sdk_layout):
        ios_sdk, _macos_sdk = sdk_layout
        monkeypatch.setenv("HOME", str(initialized_project / "home"))
        with patch.object(Target, "compile_lib", autospec=True) as mock_compile:
            code = run_main(
                monkeypatch,
                "-v",
                "xcode-script",
                "--platform",
                "iOS",
                "--sdk-root",
                str(ios_sdk),
                "--configuration",
                "release",
                "--force-color",
                "arm64 x86_64",
            )
        assert code == 0
        calls = mock_compile.call_args_list
        assert [c.args[0].name for c in calls] == ["aarch64", "x86_64"]
        _self, _config, _metadata, _noise, force_color, profile, env, overlay = calls[0].args
        assert force_color is True
        assert profile is Profile.RELEASE
        assert env.path.startswith(str(initialized_project / "home" / ".cargo" / "bin"))
        assert overlay["CFLAGS_aarch64_apple_ios"] == f"-isysroot {ios_sdk}"

    def test_xcode_script_invalid_arch(self, monkeypatch, capsys, initialized_project, sdk_layout):
        ios_sdk, _macos_sdk = sdk_layout
        with patch.object(Target, "compile_lib", autospec=True) as mock_compile:
            code = run_main(
                monkeypatch,
                "xcode-script",
                "--platform",
                "iOS",
                "--sdk-root",
                str(ios_sdk),
                "--configuration",
                "Debug",
                "arm64",
                "armv7",
            )
        assert code == 1
        mock_compile.assert_not_called()
        assert "Arch specified by Xcode was invalid" in capsys.readouterr().out

    def test_xcode_script_unsupported(self, monkeypatch, capsys, initialized_project, sdk_layout):
        ios_sdk, _macos_sdk = sdk_layout
        (initialized_project / "Cargo.toml").write_text(
            "[package.metadata.cargo-apple]\nsupported = false\n"
        )
        with patch.object(Target, "compile_lib", autospec=True) as mock_compile:
            code = run_main(
                monkeypatch,
                "xcode-script",
                "--platform",
                "iOS",
                "--sdk-root",
                str(ios_sdk),
                "--configuration",
                "debug",
                "arm64",
            )
        assert code == 0
        mock_compile.assert_not_called()
        assert "Skipping Rust compilation" in capsys.readouterr().out

    def test_malformed_metadata_reported(self, monkeypatch, capsys, initialized_project):
        (initialized_project / "Cargo.toml").write_text("[package]\nmetadata = 1\n")
        with patch.object(Target, "check", autospec=True) as mock_check:
            assert run_main(monkeypatch, "check", "x86_64") == 1
        mock_check.assert_not_called()
        out = capsys.readouterr().out
        assert "Failed to load metadata" in out
        assert "Unexpected error" not in out

    def test_malformed_config_reported(self, monkeypatch, capsys, tmp_path):
        (tmp_path / "mobile.ini").write_bytes(b"[app]\nname = h\xffllo\n")
        monkeypatch.chdir(tmp_path)
        assert run_main(monkeypatch, "build", "x86_64") == 1
        out = capsys.readouterr().out
        assert "Failed to load or generate config" in out
        assert "Unexpected error" not in out

    def test_unexpected_error(self, monkeypatch, capsys, initialized_project):
        with patch.object(Target, "build", autospec=True, side_effect=ValueError("bad")):
            assert run_main(monkeypatch, "build", "x86_64") == 1
        assert "Unexpected error" in capsys.readouterr().out


@pytest.fixture
def x86_device():
    return Device(id="1", name="Simulator Phone", model="iPhone 12", target=lookup("x86_64"))
