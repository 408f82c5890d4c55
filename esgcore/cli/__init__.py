"""esgcore CLI - Main entry point."""
from esgcore.cli.main import app, main

__all__ = ["app", "main"]
