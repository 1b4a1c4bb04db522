"""
Shared Data Models
==================

This package contains dataclasses used across the project.
"""

from .credential import Credential
from .player import PartyPlayer, SearchFilter, dedupe_players

__all__ = [
    "Credential",
    "PartyPlayer",
    "SearchFilter",
    "dedupe_players",
]
