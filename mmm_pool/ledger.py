"""Pool share ledger.

Fungible shares issued to liquidity providers. Conservation holds at all
times: the sum of all balances equals the total supply.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from mmm_pool.constants import NULL_ADDRESS, UINT256_MAX
from mmm_pool.errors import AuthorizationError, Reason, TransferError
from mmm_pool.models.types import normalize_address


class ShareLedger:
    """Balances and allowances of pool shares.

    ``mint``/``burn``/``move`` are internal operations used by the owning
    pool; ``transfer``/``transfer_from``/``approve`` are the holder-facing
    operations. An allowance of UINT256_MAX never decreases.
    """

    def __init__(
        self, name: str = "MMM Pool Share", symbol: str = "MPS", decimals: int = 18
    ) -> None:
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._balances: defaultdict[str, int] = defaultdict(int)
        self._allowances: defaultdict[tuple[str, str], int] = defaultdict(int)
        self._total_supply = 0

    # --- Views ---

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    # --- Internal operations ---

    def mint(self, account: str, amount: int) -> None:
        """Create ``amount`` shares held by ``account``."""
        self._balances[normalize_address(account)] += amount
        self._total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        """Destroy ``amount`` shares held by ``account``."""
        account = normalize_address(account)
        if self._balances[account] < amount:
            held = self._balances[account]
            raise TransferError(Reason.INSUFFICIENT_BAL, f"{account} holds {held}")
        self._balances[account] -= amount
        self._total_supply -= amount

    def move(self, src: str, dst: str, amount: int) -> None:
        """Move shares between accounts without an allowance check."""
        src = normalize_address(src)
        dst = normalize_address(dst)
        if dst == NULL_ADDRESS:
            raise TransferError(Reason.NULL_ADDRESS, "cannot transfer to the null account")
        if self._balances[src] < amount:
            raise TransferError(Reason.INSUFFICIENT_BAL, f"{src} holds {self._balances[src]}")
        self._balances[src] -= amount
        self._balances[dst] += amount

    # --- Holder operations ---

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self._allowances[(normalize_address(owner), normalize_address(spender))] = amount
        return True

    def increase_approval(self, owner: str, spender: str, amount: int) -> bool:
        key = (normalize_address(owner), normalize_address(spender))
        self._allowances[key] = min(self._allowances[key] + amount, UINT256_MAX)
        return True

    def decrease_approval(self, owner: str, spender: str, amount: int) -> bool:
        key = (normalize_address(owner), normalize_address(spender))
        self._allowances[key] = max(self._allowances[key] - amount, 0)
        return True

    def transfer(self, sender: str, dst: str, amount: int) -> bool:
        self.move(sender, dst, amount)
        return True

    def transfer_from(self, sender: str, src: str, dst: str, amount: int) -> bool:
        """Move shares from ``src`` on behalf of ``sender``."""
        sender = normalize_address(sender)
        src = normalize_address(src)
        key = (src, sender)
        if sender != src and self._allowances[key] < amount:
            allowed = self._allowances[key]
            raise AuthorizationError(Reason.BAD_CALLER, f"allowance {allowed} < {amount}")
        self.move(src, dst, amount)
        if sender != src and self._allowances[key] != UINT256_MAX:
            self._allowances[key] -= amount
        return True

    # --- Journaling ---

    def snapshot(self) -> Any:
        return dict(self._balances), dict(self._allowances), self._total_supply

    def restore(self, state: Any) -> None:
        balances, allowances, total_supply = state
        self._balances = defaultdict(int, balances)
        self._allowances = defaultdict(int, allowances)
        self._total_supply = total_supply
