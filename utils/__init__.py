"""Utility modules for PureText."""

from .log_preview import preview, describe_size

__all__ = ["preview", "describe_size"]
