"""
API Package
===========

External API clients.

Components:
- backend.py: BackendClient (store accounts, following players, notifications)
"""

from .backend import BackendClient

__all__ = [
    "BackendClient",
]
