"""Tests for friend.tech REST and contract helpers."""

import asyncio
import httpx
import pytest
from ftbot.services.friend_tech_api import FriendTechAPI, FriendTechAPIError
from ftbot.services.friend_tech_contract import TradeEvent
from ftbot.services.inactive_keys import find_inactive_keys

ADDRESS = "0xc257ea7e3a81ca8e16df8935d44d513959fa358e"


def make_api(handler):
    return FriendTechAPI(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestFriendTechAPI:
    """Test cases for FriendTechAPI."""

    def test_get_user(self):
        def handler(request):
            assert request.url.path == f"/users/{ADDRESS}"
            return httpx.Response(200, json={
                "address": ADDRESS,
                "twitterUsername": "follow_me",
                "twitterName": "Follow Me",
                "displayPrice": "62500000000000000.5",
                "lastOnline": "1700000000000"
            })

        user = asyncio.run(make_api(handler).get_user(ADDRESS))

        assert user.twitter_name == "Follow Me"
        assert user.display_price_eth == 0.0625
        assert user.last_online == 1700000000000

    def test_error_carries_status(self):
        api = make_api(lambda request: httpx.Response(500))

        with pytest.raises(FriendTechAPIError) as exc:
            asyncio.run(api.get_user(ADDRESS))

        assert exc.value.status_code == 500

    def test_find_user_returns_none_on_404(self):
        api = make_api(lambda request: httpx.Response(404, json={"message": "Address/User not found."}))

        assert asyncio.run(api.find_user(ADDRESS)) is None

    def test_find_user_returns_none_on_non_json_body(self):
        api = make_api(lambda request: httpx.Response(200, text="<html>Just a moment...</html>"))

        assert asyncio.run(api.find_user(ADDRESS)) is None

    def test_find_user_returns_none_on_malformed_price(self):
        api = make_api(lambda request: httpx.Response(200, json={"address": ADDRESS, "displayPrice": "n/a"}))

        assert asyncio.run(api.find_user(ADDRESS)) is None

    def test_find_user_returns_none_on_network_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        assert asyncio.run(make_api(handler).find_user(ADDRESS)) is None


class TestTokenHoldings:
    """Holdings pagination and filtering."""

    def test_follows_pages_and_filters(self):
        pages = {
            "0": {
                "users": [
                    {"address": "0xaaa", "balance": "3", "twitterName": "Alice"},
                    {"address": ADDRESS.upper().replace("0X", "0x"), "balance": "2", "twitterName": "Me"},
                ],
                "nextPageStart": 50
            },
            "50": {
                "users": [
                    {"address": "0xbbb", "balance": "0", "twitterName": "Sold out"},
                    {"address": "0xccc", "balance": "1", "twitterName": "Carol"},
                ],
                "nextPageStart": None
            },
        }
        seen = []

        def handler(request):
            assert request.url.path == f"/users/{ADDRESS}/token-holdings"
            page = request.url.params["pageStart"]
            seen.append(page)
            return httpx.Response(200, json=pages[page])

        holdings = asyncio.run(make_api(handler).get_token_holdings(ADDRESS))

        assert seen == ["0", "50"]
        assert list(holdings) == ["0xaaa", "0xccc"]
        assert holdings["0xaaa"].balance == 3
        assert holdings["0xccc"].twitter_name == "Carol"


class TestFindInactiveKeys:
    """Inactive subjects among the wallet's holdings."""

    NOW_MS = 1_700_000_000_000
    DAY_MS = 24 * 60 * 60 * 1000

    def make_handler(self):
        last_online = {
            "0xaaa": self.NOW_MS - 30 * self.DAY_MS,
            "0xbbb": self.NOW_MS - 1 * self.DAY_MS,
            "0xccc": self.NOW_MS - 10 * self.DAY_MS,
            "0xddd": 0,
        }

        def handler(request):
            path = request.url.path
            if path.endswith("/token-holdings"):
                return httpx.Response(200, json={
                    "users": [{"address": a, "balance": "2", "twitterName": a} for a in [*last_online, "0xeee"]],
                    "nextPageStart": None
                })
            subject = path.rsplit("/", 1)[-1]
            if subject not in last_online:
                return httpx.Response(404)
            return httpx.Response(200, json={
                "address": subject,
                "twitterUsername": f"user_{subject}",
                "twitterName": subject,
                "displayPrice": "10000000000000000",
                "lastOnline": str(last_online[subject])
            })

        return handler

    def test_oldest_first_past_cutoff(self):
        api = make_api(self.make_handler())

        keys = asyncio.run(find_inactive_keys(api, ADDRESS, inactive_days=7, now_ms=self.NOW_MS, chunk_size=2))

        assert [k.address for k in keys] == ["0xaaa", "0xccc"]
        assert keys[0].quantity == 2
        assert keys[0].price_eth == 0.01
        assert keys[0].twitter_username == "user_0xaaa"

    def test_nothing_inactive(self):
        api = make_api(self.make_handler())

        keys = asyncio.run(find_inactive_keys(api, ADDRESS, inactive_days=60, now_ms=self.NOW_MS))

        assert keys == []


class TestTradeEvent:
    """Decoding of Trade logs."""

    def test_from_log(self):
        log = {
            "args": {
                "trader": "0xTrader",
                "subject": "0xSubject",
                "isBuy": False,
                "shareAmount": 3,
                "ethAmount": 1500000000000000000,
                "protocolEthAmount": 75000000000000000,
                "subjectEthAmount": 75000000000000000,
                "supply": 12
            },
            "blockNumber": 4200,
            "logIndex": 7,
            "transactionHash": bytes.fromhex("ab" * 32)
        }

        event = TradeEvent.from_log(log)

        assert event.is_buy is False
        assert event.share_amount == 3
        assert event.eth_amount == 1.5
        assert event.protocol_eth_amount == 0.075
        assert event.supply == 12
        assert event.block_number == 4200
        assert event.log_index == 7
        assert event.transaction_hash == "0x" + "ab" * 32


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
