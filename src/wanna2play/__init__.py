"""wanna2play: a personal game catalog with hybrid semantic/keyword search."""

from importlib import metadata


def _resolve_version() -> str:
    """Return the installed distribution version or fall back to the project default."""

    try:
        return metadata.version("wanna2play")
    except metadata.PackageNotFoundError:
        return "0.2.0"


__version__ = _resolve_version()

__all__ = ["__version__"]
