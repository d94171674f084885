"""
TurboAss Command-Line Interface
===============================

- **turboass**: Z80 assembler

Implemented as a Click-based CLI application.
"""

__all__ = ["turboass"]
