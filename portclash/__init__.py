"""portclash — Forwarded-port collision detection and repair."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("portclash")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
