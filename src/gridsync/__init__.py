"""gridsync: keep a rendered table in step with a server over a delta protocol."""

__version__ = "0.1.0"
