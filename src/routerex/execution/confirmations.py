"""Chain-specific transaction confirmation checks.

Each checker reports a transaction as pending, confirmed or failed.
Lookups that fail or return nothing count as pending; only an explicit
on-chain failure (reverted receipt, instruction error, aborted or
non-SUCCESS contract result) is FAILED.
"""

import logging
from enum import Enum
from typing import Optional

import httpx

from routerex.chains import Family, get_chain_by_id
from routerex.config import Settings, get_settings

logger = logging.getLogger(__name__)


class TxStatus(str, Enum):
    """On-chain state of a submitted transaction."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


class ConfirmationChecker:
    """Poll-on-demand confirmation lookups over JSON-RPC and REST."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or get_settings()
        self._http_client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.rpc_timeout_seconds)
        return self._http_client

    async def check(self, tx_hash: str, family: Family, chain_id: Optional[int] = None) -> TxStatus:
        """Check one transaction. Never raises."""
        try:
            if family == Family.EVM:
                return await self.check_evm(tx_hash, chain_id)
            if family == Family.SOLANA:
                return await self.check_solana(tx_hash)
            if family == Family.TON:
                return await self.check_ton(tx_hash)
            if family == Family.TRON:
                return await self.check_tron(tx_hash)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Confirmation check failed for {family.value} tx {tx_hash}: {e}")
            return TxStatus.PENDING
        logger.warning(f"No confirmation checker for family {family.value}")
        return TxStatus.PENDING

    async def is_confirmed(self, tx_hash: str, family: Family, chain_id: Optional[int] = None) -> bool:
        return await self.check(tx_hash, family, chain_id) == TxStatus.CONFIRMED

    async def _rpc(self, url: str, method: str, params: list) -> Optional[dict]:
        response = await self._get_client().post(
            url,
            json={"jsonrpc": "2.0", "method": method, "params": params, "id": 1},
            timeout=self.settings.rpc_timeout_seconds,
        )
        if response.status_code != 200:
            logger.debug(f"{method} returned HTTP {response.status_code}")
            return None
        return response.json().get("result")

    async def check_evm(self, tx_hash: str, chain_id: Optional[int]) -> TxStatus:
        chain = get_chain_by_id(chain_id) if chain_id is not None else None
        if chain is None or not chain.rpc_url:
            logger.warning(f"No RPC configured for chain {chain_id}")
            return TxStatus.PENDING
        receipt = await self._rpc(chain.rpc_url, "eth_getTransactionReceipt", [tx_hash])
        if not receipt or receipt.get("status") is None:
            return TxStatus.PENDING
        if int(receipt["status"], 16) == 1:
            return TxStatus.CONFIRMED
        return TxStatus.FAILED

    async def check_solana(self, signature: str) -> TxStatus:
        result = await self._rpc(
            self.settings.solana_rpc_url,
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        statuses = (result or {}).get("value") or []
        status = statuses[0] if statuses else None
        if not status:
            return TxStatus.PENDING
        if status.get("err") is not None:
            return TxStatus.FAILED
        if status.get("confirmationStatus") in ("confirmed", "finalized"):
            return TxStatus.CONFIRMED
        return TxStatus.PENDING

    async def check_ton(self, tx_hash: str) -> TxStatus:
        headers = {"Accept": "application/json"}
        if self.settings.ton_api_key:
            headers["Authorization"] = f"Bearer {self.settings.ton_api_key}"
        response = await self._get_client().get(
            f"{self.settings.tonapi_url.rstrip('/')}/v2/blockchain/transactions/{tx_hash}",
            headers=headers,
            timeout=self.settings.rpc_timeout_seconds,
        )
        if response.status_code != 200:
            return TxStatus.PENDING
        data = response.json()
        if data.get("aborted", False) or not data.get("success", True):
            return TxStatus.FAILED
        return TxStatus.CONFIRMED

    async def check_tron(self, tx_hash: str) -> TxStatus:
        headers = {"Accept": "application/json"}
        if self.settings.trongrid_api_key:
            headers["TRON-PRO-API-KEY"] = self.settings.trongrid_api_key
        response = await self._get_client().get(
            f"{self.settings.trongrid_url.rstrip('/')}/v1/transactions/{tx_hash}",
            headers=headers,
            timeout=self.settings.rpc_timeout_seconds,
        )
        if response.status_code != 200:
            return TxStatus.PENDING
        data = response.json()
        records = data.get("data") if isinstance(data.get("data"), list) else [data]
        if not records:
            return TxStatus.PENDING
        ret = records[0].get("ret") or []
        # contractRet is absent until the transaction is in a block
        result = ret[0].get("contractRet") if ret else None
        if result is None:
            return TxStatus.PENDING
        return TxStatus.CONFIRMED if result == "SUCCESS" else TxStatus.FAILED

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
