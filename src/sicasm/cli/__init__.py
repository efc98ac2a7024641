"""
sicasm Command-Line Interface
=============================

- **sicasm**: the SIC assembler

The tool is a Click-based CLI application with help text and structured
error reporting.
"""

__all__ = ["sicasm"]
