"""specwright: incremental API spec, routes and client generation.

Derives an interface-description document from source, derives routing glue
and an optional client library from it, publishes only the artifacts whose
bytes changed, and keeps doing so on every source edit without overlapping
runs or self-triggering.
"""

__version__ = "0.1.0"
__description__ = (
    "Incremental API spec, routes and client regeneration with idempotent publishing"
)

from specwright.core.orchestrator import Orchestrator
from specwright.models.config import ConfigurationError, PluginConfig, load_plugin_config
from specwright.cli.app import app as cli

__all__ = [
    "Orchestrator",
    "PluginConfig",
    "ConfigurationError",
    "load_plugin_config",
    "cli",
    "__version__",
]
