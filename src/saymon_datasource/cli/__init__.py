"""Command-line entry point for the SAYMON datasource."""

from .main import app

__all__ = ["app"]
