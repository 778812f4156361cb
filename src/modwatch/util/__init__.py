"""
Utility functions and helpers for Modwatch.

This package provides reusable utilities:

- **logger**: Colored console and rotating file logging with session reuse
- **discord_utils**: Permission checks, duration formatting and safe wrappers
  around message deletion, transient notices and member timeouts
"""
