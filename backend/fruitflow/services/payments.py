"""Simulated escrow payments settled in ETH.

The order total (USD) is converted to wei using a live ETH/USD quote. The
transaction itself is either sent by the customer's wallet (hash supplied by
the client) or, when ``wallet_rpc_url`` is configured, sent by this service
through the wallet's JSON-RPC endpoint (e.g. Ganache).
"""

from __future__ import annotations

import logging
import time
import uuid
from decimal import ROUND_FLOOR, Decimal

import httpx
from fastapi import HTTPException, status

from fruitflow.config import settings
from fruitflow.models.order import Order
from fruitflow.schemas.order import PaymentQuote
from fruitflow.services.external_api_cache import cached_get, log_external_call

logger = logging.getLogger(__name__)

WEI_PER_ETH = Decimal(10) ** 18
PRICE_CACHE_TTL_SECONDS = 60


class WalletError(RuntimeError):
    """The wallet JSON-RPC endpoint refused or could not send the payment."""


async def fetch_eth_usd_price() -> tuple[float, bool]:
    """Return (price, is_fallback). Any failure yields the configured fallback."""
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await cached_get(
                client,
                settings.eth_price_api_url,
                service="coingecko",
                ttl=PRICE_CACHE_TTL_SECONDS,
            )
        if response.status_code >= 400:
            raise ValueError(f"price API returned HTTP {response.status_code}")
        price = float(response.json()["ethereum"]["usd"])
        if price <= 0:
            raise ValueError("non-positive ETH price")
        return price, False
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
        logger.warning(
            "ETH price fetch failed (%s); using simulated price %.2f USD",
            exc,
            settings.fallback_eth_usd_price,
        )
        return settings.fallback_eth_usd_price, True


def usd_to_wei(amount_usd: float, eth_usd_price: float) -> int:
    eth = Decimal(str(amount_usd)) / Decimal(str(eth_usd_price))
    return int((eth * WEI_PER_ETH).to_integral_value(rounding=ROUND_FLOOR))


def build_quote(order: Order, eth_usd_price: float, is_fallback: bool = False) -> PaymentQuote:
    if order.total_amount is None or order.total_amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order total must be positive to pay.",
        )
    wei = usd_to_wei(order.total_amount, eth_usd_price)
    if wei <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Calculated payment amount is too small.",
        )
    return PaymentQuote(
        order_id=order.id,
        amount_usd=order.total_amount,
        eth_usd_price=eth_usd_price,
        price_is_fallback=is_fallback,
        amount_eth=float(Decimal(wei) / WEI_PER_ETH),
        value_wei_hex=hex(wei),
        recipient_address=settings.payment_recipient_address,
    )


async def quote_order(order: Order) -> PaymentQuote:
    price, is_fallback = await fetch_eth_usd_price()
    return build_quote(order, price, is_fallback)


async def _rpc(client: httpx.AsyncClient, method: str, params: list) -> object:
    payload = {"jsonrpc": "2.0", "id": uuid.uuid4().hex[:8], "method": method, "params": params}
    start = time.monotonic()
    try:
        response = await client.post(settings.wallet_rpc_url, json=payload)
        response.raise_for_status()
        body = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        await log_external_call(
            service="wallet",
            method=method,
            url=settings.wallet_rpc_url,
            params=params,
            elapsed_ms=int((time.monotonic() - start) * 1000),
            error_message=str(exc),
        )
        raise WalletError(f"Wallet RPC {method} failed: {exc}") from exc

    await log_external_call(
        service="wallet",
        method=method,
        url=settings.wallet_rpc_url,
        params=params,
        status_code=response.status_code,
        elapsed_ms=int((time.monotonic() - start) * 1000),
        response_body=body,
    )
    if body.get("error"):
        raise WalletError(body["error"].get("message", f"Wallet RPC {method} failed"))
    return body.get("result")


async def send_wallet_transaction(quote: PaymentQuote, from_address: str | None = None) -> str:
    """Send the quoted payment from the wallet and return the transaction hash."""
    if not settings.wallet_rpc_url:
        raise WalletError("No wallet is configured on the server.")

    async with httpx.AsyncClient(timeout=30.0) as client:
        sender = from_address
        if not sender:
            accounts = await _rpc(client, "eth_accounts", [])
            if not accounts:
                accounts = await _rpc(client, "eth_requestAccounts", [])
            if not accounts:
                raise WalletError("No accounts found in wallet.")
            sender = accounts[0]
        tx_hash = await _rpc(
            client,
            "eth_sendTransaction",
            [{"from": sender, "to": quote.recipient_address, "value": quote.value_wei_hex}],
        )
    if not tx_hash:
        raise WalletError("Wallet did not return a transaction hash.")
    logger.info("Wallet payment sent order=%s tx=%s", quote.order_id, tx_hash)
    return str(tx_hash)
