# exceptions.py


class RenderError(Exception):
    """Base class for errors raised by sphere_render."""


class ConfigError(RenderError, ValueError):
    """Malformed run configuration, detected before any rendering starts."""


class ExportError(RenderError, OSError):
    """An image or metadata file could not be written."""
