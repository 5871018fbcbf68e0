"""Front desk operations core: identity resolution and integration health."""

__version__ = "0.3.0"
