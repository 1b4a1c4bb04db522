"""
Credential Model
================

Login material for one store account, already decrypted.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Credential:
    """A decrypted account cookie. Never persisted, never logged."""
    cookie: str = field(repr=False)
    label: Optional[str] = None

    def __str__(self) -> str:
        return self.label or "unlabeled account"
