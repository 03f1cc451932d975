"""Target selection with device fallback.

Three sources can decide which targets a command acts on:

1. Explicit target keys from the command line. Anything other than the
   bare default key is taken literally: every key is resolved up front
   and one bad key fails the whole selection.
2. The connected device. When the user gave no keys, or only the default
   key, the target of the detected device is used.
3. Every target. When device detection isn't allowed or finds nothing
   usable (no device, ambiguity without a TTY, ios-deploy missing),
   all targets are selected in canonical order so unattended runs stay
   deterministic.
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from ibuild.build import target as registry
from ibuild.build.target import Target

T = TypeVar("T")

DetectTarget = Callable[[], Optional[Target]]


def _dedupe(targets: Iterable[Target]) -> List[Target]:
    seen = set()
    unique = []
    for target in targets:
        if target.name not in seen:
            seen.add(target.name)
            unique.append(target)
    return unique


def select_targets(
    explicit_keys: Sequence[str],
    allow_device_fallback: bool,
    detect_target: Optional[DetectTarget] = None,
) -> List[Target]:
    """Resolve the ordered, de-duplicated targets for one command.

    Args:
        explicit_keys: Target keys given on the command line
        allow_device_fallback: Whether a connected device may pick the target
        detect_target: Returns the connected device's target, or None

    Returns:
        Non-empty list of targets

    Raises:
        TargetInvalid: If any explicit key is unknown
    """
    keys = list(explicit_keys)
    default = registry.default_key()
    only_default = all(key == default for key in keys)

    if keys and not only_default:
        # Resolve everything before returning anything
        return _dedupe([registry.lookup(key) for key in keys])

    if allow_device_fallback and detect_target is not None:
        detected = detect_target()
        if detected is not None:
            logging.info(f"Using target {detected.name!r} of connected device")
            return [detected]

    logging.info("No device target detected; selecting all targets")
    return registry.all_targets()


def call_for_targets_with_fallback(
    explicit_keys: Sequence[str],
    allow_device_fallback: bool,
    detect_target: Optional[DetectTarget],
    f: Callable[[Target], T],
) -> List[T]:
    """Select targets and run ``f`` on each, in order, stopping at the first failure.

    The first exception raised by ``f`` propagates unchanged; remaining
    targets are not attempted.

    Returns:
        Results of ``f`` per target, in selection order

    Raises:
        TargetInvalid: If selection fails (``f`` is never called)
    """
    targets = select_targets(explicit_keys, allow_device_fallback, detect_target)
    results = []
    for target in targets:
        logging.debug(f"Running stage for target {target.name!r}")
        results.append(f(target))
    return results
