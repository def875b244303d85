"""Utility functions and helpers."""

from onion_chat.core.utils.utils import format_bytes, format_duration, strip_line_terminators

__all__ = ["format_bytes", "format_duration", "strip_line_terminators"]
