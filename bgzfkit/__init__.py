"""Reading, writing, seeking, block caching and chunk selection of BGZF blocked gzip data."""

__version__ = "0.1.0"