"""
Exceptions
==========

Error taxonomy for the watcher. None of these are fatal to the process:
every failure path degrades to "try again next tick".
"""


class PartyWatchError(Exception):
    """Base class for all watcher errors."""


# -----------------------------------------------------------------------------
# Backend API
# -----------------------------------------------------------------------------

class BackendError(PartyWatchError):
    """Backend API unreachable or returned a malformed response."""


class CredentialFetchError(BackendError):
    """Store accounts could not be fetched."""


class NotifyDispatchError(BackendError):
    """In-game notification could not be delivered."""


# -----------------------------------------------------------------------------
# Matchmaking sessions
# -----------------------------------------------------------------------------

class SessionError(PartyWatchError):
    """A matchmaking session operation failed."""


class SessionProbeFailure(SessionError):
    """A credential did not yield a usable session."""


class SessionExhaustion(SessionError):
    """No credential in the batch yielded a usable session."""


class SearchError(SessionError):
    """A party search failed or returned an unusable response."""
