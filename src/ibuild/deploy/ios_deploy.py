"""
iOS device support via `ios-deploy`.

This module lists connected devices and deploys built apps to them:
1. `ios-deploy --detect --json` enumerates devices
2. Device.run archives and exports the app for the device's target
3. The exported .ipa is unpacked with `ditto`
4. `ios-deploy --bundle` installs and launches it
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from ibuild.build import target as registry
from ibuild.build.command_runner import CommandError, CommandRunner
from ibuild.build.target import Target
from ibuild.config import Config
from ibuild.env import Env
from ibuild.errors import ArchiveError, BuildError, DeviceListError, ExportError, RunError
from ibuild.opts import NoiseLevel, Profile

DETECT_TIMEOUT_SECS = 1

# ios-deploy exits non-zero with this message when nothing is plugged in
NO_DEVICE_MESSAGE = "Timed out waiting for device"


@dataclass(frozen=True)
class Device:
    """A connected iOS device.

    Attributes:
        id: Device identifier (UDID)
        name: User-visible device name
        model: Model name (e.g., "iPhone 12")
        target: Build target matching the device's architecture
    """

    id: str
    name: str
    model: str
    target: Target

    def __str__(self) -> str:
        return f"{self.name} ({self.model})"

    def run(
        self,
        config: Config,
        env: Env,
        noise_level: NoiseLevel,
        non_interactive: bool,
        profile: Profile,
    ) -> None:
        """Build, archive, export and launch the app on this device.

        Args:
            config: Project configuration
            env: Base environment
            noise_level: Verbosity forwarded to the tools
            non_interactive: Launch and exit instead of attaching the debugger
            profile: Debug or release

        Raises:
            RunError: Wrapping whichever step failed
        """
        print(f"Building app for {self}...")
        try:
            self.target.build(config, env, noise_level, profile)
            self.target.archive(config, env, noise_level, profile)
            self.target.export(config, env, noise_level)
        except (BuildError, ArchiveError, ExportError) as e:
            raise RunError("", e) from e

        runner = CommandRunner(env)
        try:
            runner.run(["ditto", "-xk", config.ipa_path(), config.export_dir()])
        except CommandError as e:
            raise RunError(f"Failed to unzip {config.ipa_path()}", e) from e

        print(f"Deploying app to {self}...")
        args = [
            "ios-deploy",
            "--id",
            self.id,
            "--bundle",
            str(config.app_path()),
            "--no-wifi",
        ]
        args.append("--justlaunch" if non_interactive else "--debug")
        try:
            runner.run(args, cwd=config.project_dir())
        except CommandError as e:
            raise RunError("Failed to deploy app via `ios-deploy`", e) from e


def parse_events(output: str) -> List[Dict[str, Any]]:
    """Split ios-deploy's stream of concatenated JSON objects.

    Raises:
        DeviceListError: If the stream isn't valid JSON
    """
    decoder = json.JSONDecoder()
    events = []
    pos = 0
    while True:
        while pos < len(output) and output[pos].isspace():
            pos += 1
        if pos >= len(output):
            break
        try:
            event, pos = decoder.raw_decode(output, pos)
        except json.JSONDecodeError as e:
            raise DeviceListError("Failed to parse `ios-deploy` output", e) from e
        if isinstance(event, dict):
            events.append(event)
    return events


def devices_from_events(events: List[Dict[str, Any]]) -> List[Device]:
    """Turn DeviceDetected events into Devices, skipping unsupported architectures."""
    devices = []
    seen = set()
    for event in events:
        if event.get("Event") != "DeviceDetected":
            continue
        info = event.get("Device") or {}
        if not isinstance(info, dict):
            continue
        device_id = info.get("DeviceIdentifier")
        if not device_id or device_id in seen:
            continue
        arch = info.get("modelArch", "")
        target = registry.for_arch(arch) if isinstance(arch, str) else None
        if target is None:
            logging.debug(f"Skipping device {device_id}: unsupported arch {arch!r}")
            continue
        seen.add(device_id)
        devices.append(
            Device(
                id=device_id,
                name=info.get("DeviceName", device_id),
                model=info.get("modelName", "unknown model"),
                target=target,
            )
        )
    return devices


def device_list(env: Env) -> List[Device]:
    """List connected iOS devices.

    Raises:
        DeviceListError: If ios-deploy can't be run or its output can't be parsed
    """
    cmd = [
        "ios-deploy",
        "--detect",
        "--timeout",
        str(DETECT_TIMEOUT_SECS),
        "--json",
        "--no-wifi",
    ]
    try:
        output = CommandRunner(env).run(cmd, capture=True).stdout
    except CommandError as e:
        if e.reason or NO_DEVICE_MESSAGE not in (e.stdout + e.stderr):
            raise DeviceListError("", e) from e
        logging.info("No devices detected")
        return []

    devices = devices_from_events(parse_events(output))
    logging.info(f"Detected {len(devices)} device(s)")
    return devices
