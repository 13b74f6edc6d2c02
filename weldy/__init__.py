"""Weldy - guided MIG weld troubleshooting wizard."""

try:
    from weldy._version import version as __version__
except ImportError:
    __version__ = "0.0.0.dev0"
