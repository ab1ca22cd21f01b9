"""Cell representative helpers: conversions, configuration, start-up checks, a runner and a probe client."""

__version__ = "0.1.0"