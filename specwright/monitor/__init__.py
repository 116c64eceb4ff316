"""Terminal reporting for generation runs.

Modules
-------
renderer
    ``RunRenderer`` turns a ``GenerationRun`` into Rich renderables and
    installs the Rich logging handler used by the CLI.
"""
