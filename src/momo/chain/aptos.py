"""Aptos fullnode REST client.

Uses the node's v1 REST API.
API Docs: https://aptos.dev/apis/fullnode-rest-api
"""

import logging
from decimal import Decimal
from typing import Any, Optional

import httpx

from momo.chain.base import ChainClient, ChainEvent, ChainTransaction
from momo.chain.tokens import APT_COIN_TYPE, get_token_decimals
from momo.errors import AccountNotFoundError, CollaboratorError

logger = logging.getLogger(__name__)

ACCOUNT_NOT_FOUND = "account_not_found"


class AptosClient(ChainClient):
    """Read-only Aptos collaborator.

    Free public fullnodes are rate limited, so the monitor keeps request
    volume per sweep small.
    """

    def __init__(
        self,
        node_url: str,
        network: str = "mainnet",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Aptos client.

        Args:
            node_url: Fullnode REST base URL ending in /v1
            network: Network name used for explorer links
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.node_url = node_url.rstrip("/")
        self.network = network
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.node_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        address: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise CollaboratorError(f"Aptos node request failed: {e}") from e

        if response.status_code == 404:
            body = self._safe_json(response)
            if body.get("error_code") == ACCOUNT_NOT_FOUND:
                raise AccountNotFoundError(address)

        if response.status_code != 200:
            body = self._safe_json(response)
            raise CollaboratorError(
                f"Aptos node error {response.status_code}: {body.get('message', response.text[:200])}",
                status_code=response.status_code,
            )

        return response.json()

    @staticmethod
    def _safe_json(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def get_transactions_since(
        self, address: str, cursor: Optional[int], page_size: int = 25
    ) -> list[ChainTransaction]:
        """Get account transactions after the cursor sequence number."""
        start = 0 if cursor is None else cursor + 1
        data = await self._request(
            "GET",
            f"/accounts/{address}/transactions",
            address,
            params={"start": start, "limit": page_size},
        )

        transactions = []
        for raw in data or []:
            tx = self._parse_transaction(raw)
            if tx is not None:
                transactions.append(tx)
        return transactions

    def _parse_transaction(self, raw: dict) -> Optional[ChainTransaction]:
        """Parse a transaction from the REST response."""
        try:
            events = [
                ChainEvent(
                    type=event.get("type", ""),
                    data=event.get("data") or {},
                    account_address=(event.get("guid") or {}).get("account_address"),
                )
                for event in raw.get("events", [])
            ]
            return ChainTransaction(
                sequence_number=int(raw["sequence_number"]),
                vm_status=raw.get("vm_status", ""),
                sender=raw.get("sender", ""),
                hash=raw.get("hash", ""),
                events=events,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Error parsing Aptos transaction: {e}")
            return None

    async def get_balance(self, address: str, coin_type: str = APT_COIN_TYPE) -> Decimal:
        """Get a coin balance through the 0x1::coin::balance view function."""
        data = await self._request(
            "POST",
            "/view",
            address,
            json={
                "function": "0x1::coin::balance",
                "type_arguments": [coin_type],
                "arguments": [address],
            },
        )
        raw = data[0] if data else "0"
        return Decimal(str(raw)).scaleb(-get_token_decimals(coin_type))
