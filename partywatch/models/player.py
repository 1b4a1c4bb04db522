"""
Party Search Models
===================

Dataclasses for party search filters and the players a search returns.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List


@dataclass(frozen=True)
class SearchFilter:
    """Parameters of one party search request."""
    prime: bool
    rank: str
    game_type: str

    @property
    def label(self) -> str:
        return "prime" if self.prime else "non-prime"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "prime": self.prime,
            "rank": self.rank,
            "game_type": self.game_type,
        }


@dataclass
class PartyPlayer:
    """
    One player returned by a party search.

    Only steam_id is interpreted; every other field the search returns is kept
    in attributes and forwarded untouched with the notification.
    """
    steam_id: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartyPlayer":
        """
        Build a player from the search wire format.

        Raises:
            ValueError: if the record has no steamId
        """
        if not isinstance(data, dict):
            raise ValueError(f"Party search record must be an object, got {type(data).__name__}")
        steam_id = data.get("steamId")
        if steam_id is None or steam_id == "":
            raise ValueError("Party search record has no steamId")
        attributes = {k: v for k, v in data.items() if k != "steamId"}
        return cls(steam_id=str(steam_id), attributes=attributes)

    def to_payload(self) -> Dict[str, Any]:
        return {"steamId": self.steam_id, **self.attributes}


def dedupe_players(players: Iterable[PartyPlayer]) -> List[PartyPlayer]:
    """
    Remove duplicate players by steam_id, keeping the first occurrence.

    Order of the input is preserved, so merging prime results before
    non-prime results keeps the prime record for players found by both.
    """
    seen = set()
    unique = []
    for player in players:
        if player.steam_id in seen:
            continue
        seen.add(player.steam_id)
        unique.append(player)
    return unique
