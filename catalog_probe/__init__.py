"""Check product codes against a remote catalog by probing its rendered pages."""

from .version import __version__

__all__ = ["__version__"]
