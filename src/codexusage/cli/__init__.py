"""CLI framework for codexusage."""
from __future__ import annotations

from codexusage.cli.app import ExitCode
from codexusage.cli.app import app
from codexusage.cli.app import run_app

__all__ = ["app", "run_app", "ExitCode"]
