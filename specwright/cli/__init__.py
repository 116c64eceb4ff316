"""specwright CLI: Typer-based command-line interface.

Provides the ``specwright`` command with subcommands for one-shot
generation, continuous watching, listing output paths and invoking host
lifecycle hooks.

All output uses Rich for formatted terminal display.
"""
