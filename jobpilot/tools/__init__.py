"""Tool framework — import tool modules here to register them."""

# Import tool modules so their @registry.tool() decorators execute.
from jobpilot.config import settings
from jobpilot.tools import job_tools  # noqa: F401
from jobpilot.tools.registry import discovery_registry, matching_registry

# Conditionally load job search when Adzuna credentials are configured.
if settings.adzuna_enabled:
    from jobpilot.tools import adzuna_tools  # noqa: F401

__all__ = ["discovery_registry", "matching_registry"]
