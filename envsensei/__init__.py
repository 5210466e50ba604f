"""envsensei: find hardcoded secrets and config values in JS/TS sources."""

__version__ = "0.1.0"
