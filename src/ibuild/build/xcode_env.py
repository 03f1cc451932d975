"""Xcode build-phase environment synthesis.

When Xcode runs `ibuild xcode-script` as a build phase it hands over a
single SDK root and a list of architectures. The C compilers invoked by
build scripts need per-triple `-isysroot` and include-path variables that
Xcode doesn't provide, so one overlay is built per architecture:

    host overlay (shared)                 target overlay (per arch)
    ---------------------                 -------------------------
    MAC_FLAGS                             <host overlay>
    CFLAGS_x86_64_apple_darwin            CFLAGS_<triple>
    CXXFLAGS_x86_64_apple_darwin          CXXFLAGS_<triple>
    OBJC_INCLUDE_PATH_x86_64_apple_darwin OBJC_INCLUDE_PATH_<triple>
    RUST_BACKTRACE

Build scripts always run on the host, so every target overlay carries the
host entries as well.
"""

from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from ibuild.build import target as registry
from ibuild.build.target import Target
from ibuild.errors import ArchInvalid, IncludeDirInvalid, MacosSdkRootInvalid, SdkRootInvalid

HOST_TRIPLE = "x86_64_apple_darwin"

# Relative to an iOS SDK root inside Xcode.app/Contents/Developer/Platforms
MACOS_SDK_RELATIVE = Path("../../../../MacOSX.platform/Developer/SDKs/MacOSX.sdk")

# Xcode ARCHS value -> triple as spelled in cc-rs environment variable names
ARCH_TRIPLES = {
    "arm64": "aarch64_apple_ios",
    "x86_64": "x86_64_apple_ios",
}

Overlay = Dict[str, str]


def isysroot(sdk_root: Path) -> str:
    return f"-isysroot {sdk_root}"


def macos_sdk_root_for(sdk_root: Path) -> Path:
    return sdk_root / MACOS_SDK_RELATIVE


def host_overlay(macos_sdk_root: Path, include_dir: Path) -> Overlay:
    """Variables used when compiling build scripts for the host."""
    macos_isysroot = isysroot(macos_sdk_root)
    return {
        "MAC_FLAGS": macos_isysroot,
        f"CFLAGS_{HOST_TRIPLE}": macos_isysroot,
        f"CXXFLAGS_{HOST_TRIPLE}": macos_isysroot,
        f"OBJC_INCLUDE_PATH_{HOST_TRIPLE}": str(include_dir),
        "RUST_BACKTRACE": "1",
    }


def target_overlay(host: Overlay, triple: str, sdk_root: Path, include_dir: Path) -> Overlay:
    """Clone ``host`` and add the sysroot/include variables for ``triple``."""
    overlay = dict(host)
    overlay[f"CFLAGS_{triple}"] = isysroot(sdk_root)
    overlay[f"CXXFLAGS_{triple}"] = isysroot(sdk_root)
    overlay[f"OBJC_INCLUDE_PATH_{triple}"] = str(include_dir)
    return overlay


def synthesize(
    sdk_root: Path,
    arches: Sequence[str],
    for_host_platform: bool,
) -> List[Tuple[Target, Overlay]]:
    """Build the (target, overlay) pairs for one Xcode build phase.

    Args:
        sdk_root: Value of Xcode's `SDKROOT`
        arches: Values of Xcode's `ARCHS`
        for_host_platform: True when Xcode is building for macOS

    Returns:
        One (target, overlay) pair per architecture, in the given order

    Raises:
        SdkRootInvalid: If ``sdk_root`` isn't a directory
        IncludeDirInvalid: If ``sdk_root/usr/include`` isn't a directory
        MacosSdkRootInvalid: If the sibling macOS SDK isn't a directory
        ArchInvalid: If any architecture is unknown (no pairs are returned)
    """
    sdk_root = Path(sdk_root)
    if not sdk_root.is_dir():
        raise SdkRootInvalid(sdk_root)

    include_dir = sdk_root / "usr" / "include"
    if not include_dir.is_dir():
        raise IncludeDirInvalid(include_dir)

    if for_host_platform:
        macos_sdk_root = sdk_root
    else:
        macos_sdk_root = macos_sdk_root_for(sdk_root)
        if not macos_sdk_root.is_dir():
            raise MacosSdkRootInvalid(macos_sdk_root)

    host = host_overlay(macos_sdk_root, include_dir)

    pairs = []
    for arch in arches:
        triple = ARCH_TRIPLES.get(arch)
        if triple is None:
            raise ArchInvalid(arch)
        if for_host_platform:
            target = registry.macos()
        else:
            target = registry.for_arch(arch)
            if target is None:
                raise ArchInvalid(arch)
        pairs.append((target, target_overlay(host, triple, sdk_root, include_dir)))
    return pairs
