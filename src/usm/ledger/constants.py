# src/usm/ledger/constants.py
from __future__ import annotations

"""USM token constants.

Anchors:
- 18 decimals, 1 USM = 1e18 units
- 1,000,000,000 USM minted to the treasury at genesis
- Hard ceiling of 50,000,000,000 USM
- One mint per 30 days
- Burn rate changes wait out a 2 day timelock
"""

# Monetary precision (1 USM = 1e18 units)
TOKEN_NAME: str = "Unified Social Markets"
TOKEN_SYMBOL: str = "USM"
TOKEN_DECIMALS: int = 18
UNIT: int = 10**TOKEN_DECIMALS

INITIAL_SUPPLY_USM: int = 1_000_000_000
INITIAL_SUPPLY: int = INITIAL_SUPPLY_USM * UNIT

MAX_SUPPLY_USM: int = 50_000_000_000
MAX_SUPPLY: int = MAX_SUPPLY_USM * UNIT

DAY_SECONDS: int = 24 * 60 * 60
MINT_COOLDOWN_SECONDS: int = 30 * DAY_SECONDS
TIMELOCK_DURATION_SECONDS: int = 2 * DAY_SECONDS

# Burn rates are thousandths: 1000 == 100%, 50 == 5%
BURN_RATE_DENOMINATOR: int = 1000
MAX_COMMITTED_BURN_RATE: int = 1000
MAX_PROPOSED_BURN_RATE: int = 100  # 10%
MAX_ENABLE_BURN_RATE: int = 100

# Smallest indivisible unit; every taxed transfer burns at least this much.
MIN_BURN_AMOUNT: int = 1

ZERO_ADDRESS: str = "0x" + "0" * 40

# Canonical id of the ledger's own holding account (minting target).
TREASURY_ACCOUNT_ID: str = "TREASURY"
