"""Option types shared by the CLI and the build stages."""

from enum import Enum


class Profile(Enum):
    """Build profile selector."""

    DEBUG = "debug"
    RELEASE = "release"

    @classmethod
    def from_release_flag(cls, release: bool) -> "Profile":
        return cls.RELEASE if release else cls.DEBUG

    @classmethod
    def from_configuration(cls, configuration: str) -> "Profile":
        """Map an Xcode `CONFIGURATION` value to a profile.

        Only the exact string "release" selects the release profile; every
        other configuration name (including "Release") builds debug.
        """
        if configuration == "release":
            return cls.RELEASE
        return cls.DEBUG

    @property
    def is_release(self) -> bool:
        return self is Profile.RELEASE


class NoiseLevel(Enum):
    """How chatty ibuild and the tools it drives should be."""

    POLITE = 0
    LOUD_AND_PROUD = 1
    FRANKLY_QUITE_PEDANTIC = 2

    @classmethod
    def from_occurrences(cls, count: int) -> "NoiseLevel":
        if count <= 0:
            return cls.POLITE
        if count == 1:
            return cls.LOUD_AND_PROUD
        return cls.FRANKLY_QUITE_PEDANTIC

    @property
    def pedantic(self) -> bool:
        return self is NoiseLevel.FRANKLY_QUITE_PEDANTIC

    @property
    def polite(self) -> bool:
        return self is NoiseLevel.POLITE
