from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest
from fastapi import HTTPException

from fruitflow.models.external_api_log import ExternalApiLog
from fruitflow.services import payments
from fruitflow.services.external_api_cache import cached_get


def _order(total):
    return SimpleNamespace(id=uuid4(), total_amount=total)


class TestQuote:
    def test_wei_is_floored_hex(self):
        quote = payments.build_quote(_order(10.0), 3000.0)
        # 10 / 3000 ETH = 3333333333333333.33 wei
        assert quote.value_wei_hex == hex(3333333333333333)
        assert quote.recipient_address == "0x83491285C0aC3dd64255A5D68f0C3e919A5Eacf2"
        assert quote.price_is_fallback is False

    def test_non_positive_total_rejected(self):
        with pytest.raises(HTTPException) as exc:
            payments.build_quote(_order(0), 2000.0)
        assert exc.value.status_code == 400

    def test_dust_amount_rejected(self):
        with pytest.raises(HTTPException):
            payments.build_quote(_order(1e-20), 2000.0)


class TestEthPrice:
    @pytest.mark.asyncio
    async def test_live_price(self):
        response = MagicMock(status_code=200)
        response.json.return_value = {"ethereum": {"usd": 3120.5}}
        with patch.object(payments, "cached_get", AsyncMock(return_value=response)):
            assert await payments.fetch_eth_usd_price() == (3120.5, False)

    @pytest.mark.asyncio
    async def test_fallback_on_network_error(self):
        failing = AsyncMock(side_effect=httpx.ConnectError("offline"))
        with patch.object(payments, "cached_get", failing):
            assert await payments.fetch_eth_usd_price() == (2000.0, True)

    @pytest.mark.asyncio
    async def test_fallback_on_unexpected_body(self):
        response = MagicMock(status_code=200)
        response.json.return_value = {"bitcoin": {"usd": 1}}
        with patch.object(payments, "cached_get", AsyncMock(return_value=response)):
            assert await payments.fetch_eth_usd_price() == (2000.0, True)


class TestWallet:
    quote = payments.build_quote(_order(20.0), 2000.0)

    @pytest.mark.asyncio
    async def test_sends_from_first_account(self):
        rpc = AsyncMock(side_effect=[["0xaaa", "0xbbb"], "0xtxhash"])
        with patch.object(payments.settings, "wallet_rpc_url", "http://wallet.local"), patch.object(
            payments, "_rpc", rpc
        ):
            assert await payments.send_wallet_transaction(self.quote) == "0xtxhash"
        method, params = rpc.call_args_list[1].args[1:]
        assert method == "eth_sendTransaction"
        assert params == [
            {"from": "0xaaa", "to": self.quote.recipient_address, "value": self.quote.value_wei_hex}
        ]

    @pytest.mark.asyncio
    async def test_requests_accounts_when_none_exposed(self):
        rpc = AsyncMock(side_effect=[[], ["0xccc"], "0xtx"])
        with patch.object(payments.settings, "wallet_rpc_url", "http://wallet.local"), patch.object(
            payments, "_rpc", rpc
        ):
            assert await payments.send_wallet_transaction(self.quote) == "0xtx"
        assert [c.args[1] for c in rpc.call_args_list] == [
            "eth_accounts",
            "eth_requestAccounts",
            "eth_sendTransaction",
        ]

    @pytest.mark.asyncio
    async def test_no_accounts(self):
        rpc = AsyncMock(side_effect=[[], []])
        with patch.object(payments.settings, "wallet_rpc_url", "http://wallet.local"), patch.object(
            payments, "_rpc", rpc
        ):
            with pytest.raises(payments.WalletError, match="No accounts"):
                await payments.send_wallet_transaction(self.quote)

    @pytest.mark.asyncio
    async def test_not_configured(self):
        with pytest.raises(payments.WalletError):
            await payments.send_wallet_transaction(self.quote)


class TestCachedGet:
    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, db_session):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(200, json={"ethereum": {"usd": 1999.0}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            first = await cached_get(client, "https://prices.test/eth", service="coingecko")
            second = await cached_get(client, "https://prices.test/eth", service="coingecko")

        assert first.json() == second.json() == {"ethereum": {"usd": 1999.0}}
        assert len(calls) == 1
        logs = db_session.query(ExternalApiLog).all()
        assert sorted(log.from_cache for log in logs) == [False, True]

    @pytest.mark.asyncio
    async def test_errors_not_cached(self):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(503, json={"error": "busy"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await cached_get(client, "https://prices.test/busy")
            response = await cached_get(client, "https://prices.test/busy")

        assert response.status_code == 503
        assert len(calls) == 2
