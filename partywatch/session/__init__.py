"""
Session Package
===============

Matchmaking session capability.

Components:
- base.py: SessionHandle interface and SessionState
- gateway.py: GatewaySession, the production handle
"""

from .base import SessionHandle, SessionState
from .gateway import GatewaySession, create_gateway_session

__all__ = [
    "SessionHandle",
    "SessionState",
    "GatewaySession",
    "create_gateway_session",
]
