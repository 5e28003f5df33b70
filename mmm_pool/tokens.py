"""External token collaborator.

An in-memory ERC20-style token. Transfers return ``False`` instead of
raising on failure; the pool turns a ``False`` into a TransferError that
aborts the enclosing operation.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Any

import structlog

from mmm_pool.constants import UINT256_MAX
from mmm_pool.models.types import derive_address, normalize_address

logger = structlog.get_logger()

# Called after a successful transfer with (src, dst, amount)
TransferHook = Callable[[str, str, int], None]


class Token:
    """ERC20-style token with optional transfer hook.

    Usage:
        weth = Token("Wrapped Ether", "WETH")
        weth.mint(alice, 5 * 10**18)
        weth.approve(alice, pool.address, UINT256_MAX)
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int = 18,
        address: str | None = None,
    ) -> None:
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        if address is None:
            address = derive_address("token", symbol, id(self))
        self.address = normalize_address(address)
        self.on_transfer: TransferHook | None = None
        self.fail_transfers = False
        self._balances: defaultdict[str, int] = defaultdict(int)
        self._allowances: defaultdict[tuple[str, str], int] = defaultdict(int)
        self._total_supply = 0

    def __repr__(self) -> str:
        return f"Token({self.symbol}, {self.address})"

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def mint(self, account: str, amount: int) -> None:
        self._balances[normalize_address(account)] += amount
        self._total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        account = normalize_address(account)
        if self._balances[account] < amount:
            raise ValueError(f"cannot burn {amount} from {account}")
        self._balances[account] -= amount
        self._total_supply -= amount

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self._allowances[(normalize_address(owner), normalize_address(spender))] = amount
        return True

    def transfer(self, sender: str, dst: str, amount: int) -> bool:
        return self._transfer(normalize_address(sender), normalize_address(dst), amount)

    def transfer_from(self, sender: str, src: str, dst: str, amount: int) -> bool:
        sender = normalize_address(sender)
        src = normalize_address(src)
        key = (src, sender)
        if sender != src and self._allowances[key] < amount:
            logger.debug(
                "token_allowance_insufficient", token=self.symbol, owner=src, spender=sender
            )
            return False
        if not self._transfer(src, normalize_address(dst), amount):
            return False
        if sender != src and self._allowances[key] != UINT256_MAX:
            self._allowances[key] -= amount
        return True

    def _transfer(self, src: str, dst: str, amount: int) -> bool:
        if self.fail_transfers or self._balances[src] < amount:
            logger.debug("token_transfer_failed", token=self.symbol, src=src, amount=amount)
            return False
        self._balances[src] -= amount
        self._balances[dst] += amount
        if self.on_transfer is not None:
            self.on_transfer(src, dst, amount)
        return True

    # --- Journaling ---

    def snapshot(self) -> Any:
        return dict(self._balances), dict(self._allowances), self._total_supply

    def restore(self, state: Any) -> None:
        balances, allowances, total_supply = state
        self._balances = defaultdict(int, balances)
        self._allowances = defaultdict(int, allowances)
        self._total_supply = total_supply
