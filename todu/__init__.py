"""Todu: multi-user task and list API."""

__version__ = "1.0.0"
