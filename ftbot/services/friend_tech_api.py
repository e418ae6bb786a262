"""
friend.tech REST API client

Looks up user profiles (twitter name, key price, last online) and the
keys a wallet holds.
"""

import logging
from dataclasses import dataclass
from typing import Optional
import httpx
from web3 import Web3

from ftbot.utils.formatting import compare_hashes

logger = logging.getLogger(__name__)

API_URL = "https://prod-api.kosetto.com"


class FriendTechAPIError(Exception):
    """Non-2xx response from the friend.tech API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class FriendTechUser:
    address: str
    twitter_username: str
    twitter_name: str
    display_price_eth: float
    last_online: int

    @classmethod
    def from_api(cls, data: dict) -> "FriendTechUser":
        # displayPrice is wei, sometimes serialized with a fractional part
        display_price = str(data.get("displayPrice") or "0").split(".")[0]
        return cls(
            address=data.get("address", ""),
            twitter_username=data.get("twitterUsername", ""),
            twitter_name=data.get("twitterName", ""),
            display_price_eth=float(Web3.from_wei(int(display_price), "ether")),
            last_online=int(data.get("lastOnline") or 0)
        )


@dataclass
class KeyHolding:
    """Keys of one subject held by a wallet."""
    address: str
    balance: int
    twitter_name: str


class FriendTechAPI:
    """Async client for prod-api.kosetto.com."""

    def __init__(self, base_url: str = API_URL, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url
        self.session = client or httpx.AsyncClient(timeout=30.0)
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
        })

    async def close(self):
        await self.session.aclose()

    async def _get(self, path: str, params: Optional[dict] = None) -> dict:
        resp = await self.session.get(f"{self.base_url}{path}", params=params)
        if resp.status_code != 200:
            raise FriendTechAPIError(
                f"Error: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code
            )
        return resp.json()

    async def get_user(self, address: str) -> FriendTechUser:
        return FriendTechUser.from_api(await self._get(f"/users/{address}"))

    async def find_user(self, address: str) -> Optional[FriendTechUser]:
        """Like get_user but returns None instead of raising. 404 is not logged."""
        try:
            return await self.get_user(address)
        except FriendTechAPIError as e:
            if e.status_code != 404:
                logger.warning("friend.tech user lookup failed for %s: %s", address, e)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            # Non-JSON bodies (Cloudflare pages) and malformed profiles land here too
            logger.warning("friend.tech user lookup failed for %s: %s", address, e)
        return None

    async def get_token_holdings(self, address: str) -> dict[str, KeyHolding]:
        """
        Keys held by `address`, following `nextPageStart` pagination.

        Returns:
            Mapping of subject address to holding; zero balances and the
            wallet's own keys are left out
        """
        holdings: dict[str, KeyHolding] = {}
        page_start = "0"

        while True:
            data = await self._get(f"/users/{address}/token-holdings", params={"pageStart": page_start})
            for user in data.get("users", []):
                balance = int(user.get("balance") or 0)
                if balance > 0 and not compare_hashes(user["address"], address):
                    holdings[user["address"]] = KeyHolding(
                        address=user["address"],
                        balance=balance,
                        twitter_name=user.get("twitterName", "")
                    )

            next_page = data.get("nextPageStart")
            if not next_page:
                return holdings
            page_start = str(next_page)
