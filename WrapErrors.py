from __future__ import annotations


class WrapError(Exception):
    """Base error for the wrap compositor. Never fatal to the process."""


class ConfigurationError(WrapError, ValueError):
    """Unknown product size, invalid border width/DPI or unknown effect mode."""


class SnapshotFailure(WrapError, RuntimeError):
    """The design surface could not render a raster snapshot."""


class OverlayUninitialized(WrapError, RuntimeError):
    """Compositing was requested before the overlay layers were set up."""
