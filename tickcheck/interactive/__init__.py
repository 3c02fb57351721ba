#!filepath: tickcheck/interactive/__init__.py
from .commands import CommandDispatcher, format_pause, format_result, parse_command, parse_position

__all__ = ["CommandDispatcher", "parse_command", "parse_position", "format_pause", "format_result"]
