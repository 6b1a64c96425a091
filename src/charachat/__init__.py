"""charachat - multi-character AI chat with a streaming reply pipeline."""

__version__ = "0.1.0"
