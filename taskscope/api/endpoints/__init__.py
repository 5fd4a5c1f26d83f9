"""API endpoints package."""

from . import health
from . import projects
from . import prd
from . import scope
from . import change_requests
from . import tasks

__all__ = ["health", "projects", "prd", "scope", "change_requests", "tasks"]
