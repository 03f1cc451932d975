"""Device selection.

DeviceResolver picks the device a command should act on. It depends on two
injected callables so it can be exercised without hardware or a terminal:

    list_devices() -> list of Device       (raises DeviceListError)
    choose(devices) -> Device              (raises PromptError)
"""

import logging
import sys
from typing import Callable, List, Optional, Sequence

from ibuild.build.target import Target
from ibuild.deploy.ios_deploy import Device
from ibuild.errors import DeviceListError, PromptError

ListDevices = Callable[[], List[Device]]
ChooseDevice = Callable[[Sequence[Device]], Device]


def list_display_only(devices: Sequence[Device]) -> None:
    """Print a numbered device list."""
    if not devices:
        print("No connected devices detected.")
        return
    for index, device in enumerate(devices):
        print(f"  [{index}] {device}")


def choose_device(devices: Sequence[Device], prompt_fn: Callable[[str], str] = input) -> Device:
    """Ask the user to pick one of ``devices`` by index.

    Raises:
        PromptError: If stdin isn't a TTY, input ends, or the answer is invalid
    """
    if not sys.stdin.isatty():
        raise PromptError("Can't prompt for a device: input is not interactive")
    print("Detected iOS devices:")
    list_display_only(devices)
    try:
        answer = prompt_fn(f"Enter device index [0-{len(devices) - 1}]: ").strip()
    except EOFError as e:
        raise PromptError("Device selection was cancelled", e) from e
    if not answer.isdecimal() or int(answer) >= len(devices):
        raise PromptError(f"{answer!r} isn't a valid device index")
    return devices[int(answer)]


class DeviceResolver:
    """Resolves the device (and its target) to use.

    Usage:
        resolver = DeviceResolver(lambda: device_list(env), choose_device, non_interactive)
        device = resolver.resolve_device()
    """

    def __init__(self, list_devices: ListDevices, choose: ChooseDevice, non_interactive: bool = False):
        self.list_devices = list_devices
        self.choose = choose
        self.non_interactive = non_interactive

    def resolve_device(self) -> Device:
        """Pick the device to use.

        One connected device is used without prompting; several are offered
        to ``choose`` unless non-interactive.

        Raises:
            PromptError: If enumeration fails, nothing is connected, the
                choice is ambiguous without a TTY, or the user cancels
        """
        try:
            devices = self.list_devices()
        except DeviceListError as e:
            raise PromptError("", e) from e

        if not devices:
            raise PromptError("No connected iOS devices detected")
        if len(devices) == 1:
            logging.info(f"Using the only connected device: {devices[0]}")
            return devices[0]
        if self.non_interactive:
            raise PromptError(
                f"{len(devices)} iOS devices are connected and prompting is disabled"
            )
        return self.choose(devices)

    def resolve_prompted_target(self) -> Target:
        return self.resolve_device().target

    def detect_target_ok(self) -> Optional[Target]:
        """Target of the resolved device, or None if resolution failed."""
        try:
            return self.resolve_prompted_target()
        except PromptError as e:
            logging.info(f"Device detection failed: {e.report()}")
            return None
