"""Authentication-state façade over pluggable sign-in providers."""

__version__ = "0.1.0"
