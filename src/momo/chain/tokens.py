"""Token metadata and event type helpers.

Coin types are Move struct tags such as 0x1::aptos_coin::AptosCoin.
Unknown coins fall back to a generic name and 8 decimals until a mapping
is added here.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

APT_COIN_TYPE = "0x1::aptos_coin::AptosCoin"
DEPOSIT_EVENT_TYPE = "0x1::coin::DepositEvent"

UNKNOWN_TOKEN_TYPE = "Unknown"
GENERIC_TOKEN_NAME = "Token"
DEFAULT_DECIMALS = 8

_TYPE_TAG_RE = re.compile(r"<(.+)>")


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    decimals: int


KNOWN_TOKENS: dict[str, TokenInfo] = {
    APT_COIN_TYPE: TokenInfo(symbol="APT", decimals=8),
}


def extract_token_type(event_type: str) -> str:
    """Pull the coin type out of a generic event type.

    Example: 0x1::coin::DepositEvent<0x1::aptos_coin::AptosCoin>
    gives 0x1::aptos_coin::AptosCoin.
    """
    match = _TYPE_TAG_RE.search(event_type or "")
    return match.group(1) if match else UNKNOWN_TOKEN_TYPE


def is_deposit_event(event_type: str) -> bool:
    return bool(event_type) and DEPOSIT_EVENT_TYPE in event_type


def _lookup(token_type: str) -> Optional[TokenInfo]:
    for coin_type, info in KNOWN_TOKENS.items():
        if coin_type in token_type:
            return info
    return None


def get_token_name(token_type: str) -> str:
    """Friendly symbol for a coin type."""
    info = _lookup(token_type)
    return info.symbol if info else GENERIC_TOKEN_NAME


def get_token_decimals(token_type: str) -> int:
    info = _lookup(token_type)
    return info.decimals if info else DEFAULT_DECIMALS


def normalize_amount(raw_amount, token_type: str) -> Decimal:
    """Convert base units into whole tokens. Unparseable input gives 0."""
    try:
        units = Decimal(str(raw_amount))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not units.is_finite():
        return Decimal("0")
    return units.scaleb(-get_token_decimals(token_type))


def format_amount(amount: Decimal, places: int = 6) -> str:
    """Render an amount with a fixed number of decimal places."""
    return f"{amount:.{places}f}"
