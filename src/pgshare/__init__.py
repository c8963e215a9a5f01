"""pgshare: share ephemeral PostgreSQL clusters between processes."""

__version__ = "0.1.0"
