"""Tests for the target registry and the per-target pipeline stages."""

from unittest.mock import MagicMock, patch

import pytest

from ibuild.build import target as registry
from ibuild.build.command_runner import CommandError
from ibuild.config import Metadata
from ibuild.errors import (
    ArchiveError,
    BuildError,
    CheckError,
    CompileLibError,
    ExportError,
    TargetInvalid,
)
from ibuild.opts import NoiseLevel, Profile


class TestRegistry:
    """Test target lookup."""

    def test_all_targets_canonical_order(self):
        assert [t.name for t in registry.all_targets()] == ["aarch64", "x86_64"]

    def test_name_list(self):
        assert registry.name_list() == ["aarch64", "x86_64"]

    def test_default_key_is_registered(self):
        assert registry.default_key() in registry.name_list()

    def test_lookup(self):
        target = registry.lookup("x86_64")
        assert target.triple == "x86_64-apple-ios"
        assert target.sdk == "iphonesimulator"

    def test_lookup_invalid(self):
        with pytest.raises(TargetInvalid) as exc_info:
            registry.lookup("armv7")
        assert "armv7" in exc_info.value.report().details
        assert "aarch64, x86_64" in exc_info.value.report().details

    def test_for_arch(self):
        assert registry.for_arch("arm64").name == "aarch64"
        assert registry.for_arch("arm64e").name == "aarch64"
        assert registry.for_arch("x86_64").name == "x86_64"
        assert registry.for_arch("armv7") is None

    def test_macos_not_selectable(self):
        macos = registry.macos()
        assert macos.is_macos
        assert macos.name not in registry.name_list()


class TestStages:
    """Test the command lines each stage runs."""

    @pytest.fixture
    def runner(self):
        """Patch CommandRunner in the target module and return the instance."""
        with patch("ibuild.build.target.CommandRunner") as mock_runner_class:
            mock_instance = MagicMock()
            mock_runner_class.return_value = mock_instance
            yield mock_instance

    @pytest.fixture
    def aarch64(self):
        return registry.lookup("aarch64")

    def _args(self, runner):
        return runner.run.call_args[0][0]

    def test_check(self, runner, aarch64, config, metadata, env):
        aarch64.check(config, metadata, env, NoiseLevel.POLITE)
        assert self._args(runner) == [
            "cargo",
            "check",
            "--target",
            "aarch64-apple-ios",
            "--features",
            "metal",
        ]
        assert runner.run.call_args[1]["cwd"] == config.app.root_dir

    def test_check_verbosity(self, runner, aarch64, config, env):
        aarch64.check(config, Metadata(), env, NoiseLevel.LOUD_AND_PROUD)
        assert self._args(runner)[-1] == "-v"
        aarch64.check(config, Metadata(), env, NoiseLevel.FRANKLY_QUITE_PEDANTIC)
        assert self._args(runner)[-1] == "-vv"

    def test_check_failure(self, runner, aarch64, config, metadata, env):
        error = CommandError(["cargo", "check"], 101, "error[E0425]")
        runner.run.side_effect = error
        with pytest.raises(CheckError) as exc_info:
            aarch64.check(config, metadata, env, NoiseLevel.POLITE)
        assert exc_info.value.cause is error
        assert exc_info.value.target_name == "aarch64"

    def test_build(self, runner, aarch64, config, env):
        aarch64.build(config, env, NoiseLevel.POLITE, Profile.RELEASE)
        args = self._args(runner)
        assert args[0] == "xcodebuild"
        assert args[args.index("-scheme") + 1] == "hello-world_iOS"
        assert args[args.index("-sdk") + 1] == "iphoneos"
        assert args[args.index("-configuration") + 1] == "release"
        assert args[args.index("-arch") + 1] == "arm64"
        assert "-allowProvisioningUpdates" in args
        assert "-quiet" in args
        assert args[-1] == "build"

    def test_build_loud_is_not_quiet(self, runner, aarch64, config, env):
        aarch64.build(config, env, NoiseLevel.LOUD_AND_PROUD, Profile.DEBUG)
        args = self._args(runner)
        assert "-quiet" not in args
        assert args[args.index("-configuration") + 1] == "debug"

    def test_build_failure(self, runner, aarch64, config, env):
        runner.run.side_effect = CommandError(["xcodebuild"], 65)
        with pytest.raises(BuildError) as exc_info:
            aarch64.build(config, env, NoiseLevel.POLITE, Profile.DEBUG)
        report = exc_info.value.report()
        assert report.msg == "Failed to build via `xcodebuild`"
        assert "exited with code 65" in report.details

    def test_archive(self, runner, aarch64, config, env):
        aarch64.archive(config, env, NoiseLevel.POLITE, Profile.DEBUG)
        args = self._args(runner)
        assert args[-3:] == ["archive", "-archivePath", str(config.archive_path())]

    def test_archive_failure(self, runner, aarch64, config, env):
        runner.run.side_effect = CommandError(["xcodebuild"], 65)
        with pytest.raises(ArchiveError):
            aarch64.archive(config, env, NoiseLevel.POLITE, Profile.DEBUG)

    def test_export(self, runner, aarch64, config, env):
        aarch64.export(config, env, NoiseLevel.LOUD_AND_PROUD)
        args = self._args(runner)
        assert args[:2] == ["xcodebuild", "-exportArchive"]
        assert args[args.index("-exportOptionsPlist") + 1] == str(config.export_plist_path())
        assert args[args.index("-exportPath") + 1] == str(config.export_dir())

    def test_export_failure(self, runner, aarch64, config, env):
        runner.run.side_effect = CommandError(["xcodebuild"], reason="not found")
        with pytest.raises(ExportError):
            aarch64.export(config, env, NoiseLevel.POLITE)

    def test_compile_lib(self, runner, aarch64, config, metadata, env):
        overlay = {"CFLAGS_aarch64_apple_ios": "-isysroot /sdk"}
        aarch64.compile_lib(
            config, metadata, NoiseLevel.POLITE, True, Profile.RELEASE, env, overlay
        )
        args = self._args(runner)
        assert args[:4] == ["cargo", "build", "--target", "aarch64-apple-ios"]
        assert "--lib" in args
        assert "--release" in args
        assert args[-2:] == ["--color", "always"]
        assert runner.run.call_args[1]["overlay"] == overlay

    def test_compile_lib_debug_no_color(self, runner, aarch64, config, metadata, env):
        aarch64.compile_lib(config, metadata, NoiseLevel.POLITE, False, Profile.DEBUG, env, {})
        args = self._args(runner)
        assert "--release" not in args
        assert "--color" not in args

    def test_compile_lib_macos_uses_macos_features(self, runner, config, metadata, env):
        registry.macos().compile_lib(
            config, metadata, NoiseLevel.POLITE, False, Profile.DEBUG, env, {}
        )
        args = self._args(runner)
        assert args[args.index("--features") + 1] == "desktop"
        assert "x86_64-apple-darwin" in args

    def test_compile_lib_failure(self, runner, aarch64, config, metadata, env):
        runner.run.side_effect = CommandError(["cargo"], 101)
        with pytest.raises(CompileLibError):
            aarch64.compile_lib(config, metadata, NoiseLevel.POLITE, False, Profile.DEBUG, env, {})
