"""SafeSave: source control status polling and gated sync actions."""

__version__ = "0.1.0"
