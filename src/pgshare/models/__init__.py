"""Pydantic data models for pgshare.

- Version, PartialVersion: PostgreSQL version numbers and constraints
- Runtime: an installed PostgreSQL and the environment to run it with
- ClusterMode: durability trade-off applied with ALTER SYSTEM
"""

from .mode import MODE_SETTINGS, ClusterMode
from .runtime import Runtime, prepend_to_path
from .version import PartialVersion, Version

__all__ = [
    "MODE_SETTINGS",
    "ClusterMode",
    "PartialVersion",
    "Runtime",
    "Version",
    "prepend_to_path",
]
