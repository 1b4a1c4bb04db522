"""
Backend API Client

Single responsibility: talk to the backend REST API that owns the store
accounts, the following-players list and the in-game notification sink.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from ..config import config
from ..exceptions import BackendError, CredentialFetchError, NotifyDispatchError
from ..models import Credential

logger = logging.getLogger(__name__)


def _identity(value: str) -> str:
    return value


class BackendClient:
    """
    Blocking client for the backend API.

    Handles:
    - Fetching a batch of store account credentials
    - Fetching the following-players id list
    - Posting in-game sightings

    Cookies arrive encrypted; `decrypt` turns each one into usable login
    material. Decryption itself lives outside this package, so the default is
    a passthrough.
    """

    def __init__(
        self,
        api_url: str = None,
        timeout: float = None,
        decrypt: Optional[Callable[[str], str]] = None,
    ):
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.timeout = timeout or config.http_timeout_sec
        self.decrypt = decrypt or _identity

    def _url(self, path: str) -> str:
        return f"{self.api_url}/{path.lstrip('/')}"

    def _get_result(self, path: str, params: Dict[str, Any] = None) -> Any:
        """
        GET an endpoint and unwrap its {"result": ...} envelope.

        Raises:
            BackendError: on network failure, non-2xx status or a malformed body
        """
        try:
            response = requests.get(self._url(path), params=params, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.Timeout:
            raise BackendError(f"GET {path} timed out after {self.timeout}s")
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else "unknown"
            raise BackendError(f"GET {path} returned HTTP {status_code}")
        except requests.exceptions.RequestException as e:
            raise BackendError(f"GET {path} failed: {type(e).__name__}")
        except ValueError:
            raise BackendError(f"GET {path} returned invalid JSON")

        if not isinstance(body, dict) or "result" not in body:
            raise BackendError(f"GET {path} response has no 'result' field")
        return body["result"]

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------

    def get_store_accounts(self, limit: int = None) -> List[Credential]:
        """
        Fetch a random batch of store accounts as decrypted credentials.

        Never raises: a failed fetch is logged and yields an empty batch.
        Records whose cookie is missing or cannot be decrypted are skipped.

        Args:
            limit: Batch size (default from config)

        Returns:
            List of Credential objects, possibly empty
        """
        limit = limit or config.credential_batch_size
        try:
            accounts = self._get_result("getRandomStoreMyAccount", params={"limit": limit})
            if not isinstance(accounts, list):
                raise CredentialFetchError("store account result is not a list")
        except BackendError as e:
            logger.error(f"Could not fetch store accounts: {e}")
            return []

        credentials = []
        for index, account in enumerate(accounts):
            if not isinstance(account, dict) or not account.get("cookie"):
                logger.debug(f"Skipping store account #{index}: no cookie")
                continue
            try:
                cookie = self.decrypt(account["cookie"])
            except Exception as e:
                logger.warning(f"Skipping store account #{index}: decrypt failed ({type(e).__name__})")
                continue
            label = account.get("username") or account.get("accountName") or f"store-account-{index}"
            credentials.append(Credential(cookie=cookie, label=str(label)))

        logger.info(f"Fetched {len(credentials)} store accounts (requested {limit})")
        return credentials

    def get_following_players(self) -> List[str]:
        """
        Fetch the ids of every followed player.

        Raises:
            BackendError: if the list could not be fetched or is malformed
        """
        steam_ids = self._get_result("getFollowingPlayers")
        if not isinstance(steam_ids, list):
            raise BackendError("following players result is not a list")
        return [str(steam_id) for steam_id in steam_ids if steam_id]

    def notify_players_in_game(self, players: List[Dict[str, Any]]):
        """
        Report players currently in a party search.

        Raises:
            NotifyDispatchError: if the backend did not accept the batch
        """
        try:
            response = requests.post(
                self._url("notifyPlayersInGame"),
                json=players,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else "unknown"
            raise NotifyDispatchError(f"notifyPlayersInGame returned HTTP {status_code}")
        except requests.exceptions.RequestException as e:
            raise NotifyDispatchError(f"notifyPlayersInGame failed: {type(e).__name__}")
