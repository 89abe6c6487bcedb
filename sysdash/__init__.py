"""sysdash: a live, themed terminal dashboard for host performance counters."""

__version__ = "1.1.0"
