"""
Session Gateway Client

Production SessionHandle: drives a matchmaking connection that lives inside
the session gateway service, over its REST API.
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..config import config
from ..exceptions import SearchError, SessionProbeFailure
from ..models import Credential, PartyPlayer, SearchFilter
from .base import SessionHandle

logger = logging.getLogger(__name__)


class GatewaySession(SessionHandle):
    """
    Async client for one gateway-hosted session.

    Handles:
    - Login with a store account cookie
    - Silent game launch as the liveness probe
    - Party search with a bounded timeout
    - Log off
    """

    def __init__(
        self,
        credential: Credential,
        base_url: str = None,
        request_timeout: float = None,
    ):
        super().__init__(credential)
        self.base_url = (base_url or config.session_gateway_url).rstrip("/")
        self.request_timeout = request_timeout or config.http_timeout_sec
        self.session_id: Optional[str] = None
        self._http: Optional[aiohttp.ClientSession] = None

    async def _ensure_http(self) -> aiohttp.ClientSession:
        """Create the HTTP session if needed."""
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
        return self._http

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict = None,
        timeout: float = None,
    ) -> Dict[str, Any]:
        """
        Make a request to the gateway.

        Returns:
            Parsed JSON object ({} for an empty body)

        Raises:
            aiohttp.ClientError, asyncio.TimeoutError, ValueError
        """
        http = await self._ensure_http()
        kwargs = {"json": payload} if payload is not None else {}
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)

        async with http.request(method, f"{self.base_url}{path}", **kwargs) as response:
            if response.status >= 400:
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=await response.text(),
                )
            if response.content_length == 0:
                return {}
            body = await response.json(content_type=None)

        if body is None:
            return {}
        if not isinstance(body, dict):
            raise ValueError(f"{method} {path} returned {type(body).__name__}, expected object")
        return body

    # -------------------------------------------------------------------------
    # SessionHandle
    # -------------------------------------------------------------------------

    async def probe(self) -> bool:
        try:
            login = await self._request("POST", "/sessions", {"cookie": self.credential.cookie})
            self.session_id = login.get("session_id")
            if not self.session_id:
                raise SessionProbeFailure("gateway login returned no session_id")

            self.emit("loggedOn", self.session_id)
            result = await self._request("POST", f"/sessions/{self.session_id}/play-silent")
        except aiohttp.ClientError as e:
            raise SessionProbeFailure(f"gateway probe failed: {type(e).__name__}") from e
        except ValueError as e:
            raise SessionProbeFailure(f"gateway probe returned malformed data: {e}") from e

        playable = bool(result.get("playable"))
        self.emit("playable", playable)
        return playable

    async def search(self, search_filter: SearchFilter, timeout: float) -> List[PartyPlayer]:
        if not self.session_id:
            raise SearchError("session is not logged in")

        payload = search_filter.to_payload()
        payload["timeout"] = int(timeout * 1000)
        try:
            body = await self._request(
                "POST",
                f"/sessions/{self.session_id}/party-search",
                payload,
                timeout=timeout,
            )
        except aiohttp.ClientError as e:
            raise SearchError(f"{search_filter.label} search failed: {type(e).__name__}") from e
        except ValueError as e:
            raise SearchError(f"{search_filter.label} search returned malformed data: {e}") from e

        records = body.get("players") or []
        if not isinstance(records, list):
            raise SearchError(f"{search_filter.label} search players field is not a list")

        players = []
        for record in records:
            try:
                players.append(PartyPlayer.from_dict(record))
            except ValueError as e:
                logger.debug(f"[{self.label}] Skipping search record: {e}")
        return players

    async def _close(self):
        try:
            if self.session_id:
                await self._request("DELETE", f"/sessions/{self.session_id}")
        except Exception as e:
            logger.warning(f"[{self.label}] Log off failed: {type(e).__name__}: {e}")
        finally:
            self.session_id = None
            if self._http is not None:
                await self._http.close()
                self._http = None


def create_gateway_session(credential: Credential) -> GatewaySession:
    """Session factory used by the session manager in production."""
    return GatewaySession(credential)
