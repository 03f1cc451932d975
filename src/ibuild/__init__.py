"""ibuild - Apple build orchestration for cross-platform Rust mobile projects."""

__version__ = "0.1.0"
