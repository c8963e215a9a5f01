"""Cluster durability modes."""

from enum import Enum


class ClusterMode(str, Enum):
    """How a cluster trades durability for speed.

    The mode is sticky: it is written with ALTER SYSTEM and survives
    restarts until changed again.
    """

    # fsync, full_page_writes, synchronous_commit back to defaults
    SLOW = "slow"
    # DANGER: all three off; a crash can corrupt the cluster beyond repair
    FAST = "fast"


MODE_SETTINGS = ("fsync", "full_page_writes", "synchronous_commit")
