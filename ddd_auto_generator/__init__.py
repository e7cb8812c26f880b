"""Schema-driven generator of event-sourced domain artifacts."""

__version__ = "0.1.0"
