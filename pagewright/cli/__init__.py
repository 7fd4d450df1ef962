"""Pagewright CLI — Typer-based command-line interface.

Provides the ``pagewright`` command with subcommands for resolving the
pinned generator version, building, deploying and running the whole
pipeline for a trigger event.

All output uses Rich for formatted terminal display.
"""
