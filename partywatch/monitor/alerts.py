"""
In-Game Notifications
=====================

Reports sighted players to the backend's notifyPlayersInGame endpoint.

Delivery is best-effort: a failed dispatch is logged and dropped, never
retried and never raised into the search cycle.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from partywatch.api import BackendClient
from partywatch.exceptions import NotifyDispatchError
from partywatch.models import PartyPlayer

logger = logging.getLogger(__name__)


@dataclass
class NotifierConfig:
    """Configuration for notification sending."""
    dry_run: bool = False
    # Sightings listed in a single log line before truncation
    max_logged_players: int = 10


class InGameNotifier:
    """
    Sends batches of sighted players to the backend.

    Tracks simple delivery counters for the startup/shutdown summaries.
    """

    def __init__(self, client: Optional[BackendClient] = None, config: Optional[NotifierConfig] = None):
        self.config = config or NotifierConfig()
        self.client = client if client is not None else BackendClient()

        self.sent_batches = 0
        self.failed_batches = 0
        self.last_sent_at: Optional[datetime] = None

    def _describe(self, players: List[PartyPlayer]) -> str:
        shown = [p.steam_id for p in players[:self.config.max_logged_players]]
        extra = len(players) - len(shown)
        return ", ".join(shown) + (f" (+{extra} more)" if extra > 0 else "")

    def notify(self, players: List[PartyPlayer]) -> bool:
        """
        Dispatch one batch of sightings.

        Args:
            players: Sighted players, already filtered and deduplicated

        Returns:
            True if the backend accepted the batch (always True in dry run)
        """
        if not players:
            logger.debug("No players to notify")
            return False

        payload = [player.to_payload() for player in players]

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would notify {len(players)} players in game: {self._describe(players)}")
            print(f"\n{'='*60}")
            print("[DRY RUN] Players in game:")
            print("=" * 60)
            print(json.dumps(payload, indent=2, default=str))
            print("=" * 60 + "\n")
            self._record_sent()
            return True

        try:
            self.client.notify_players_in_game(payload)
        except NotifyDispatchError as e:
            self.failed_batches += 1
            logger.error(f"Failed to notify players in game: {e}")
            return False

        self._record_sent()
        logger.info(f"Notified {len(players)} players in game: {self._describe(players)}")
        return True

    def _record_sent(self):
        self.sent_batches += 1
        self.last_sent_at = datetime.now(timezone.utc)


def send_test_notification(dry_run: bool = False, steam_id: str = "76561197960265728") -> bool:
    """
    Send a test sighting to verify the backend notification endpoint.

    Args:
        dry_run: If True, print the payload instead of sending
        steam_id: Player id to report

    Returns:
        True if successful
    """
    notifier = InGameNotifier(config=NotifierConfig(dry_run=dry_run))
    return notifier.notify([PartyPlayer(steam_id=steam_id, attributes={"test": True})])
