"""
Package version.

Kept in its own module so the HTTP layer can read it for the user agent
without importing the package root.
"""

__version__ = "0.1.0"
