"""Construction-site operations backend: daily reports and shipments."""

__version__ = "0.3.0"
