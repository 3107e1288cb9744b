"""Deterministic identifiers, packed and hashed like the original Gnosis ConditionalTokens release.

Collection ids use the keccak256(conditionId, indexSet) rule of that release, not the
alt_bn128 point-addition rule of the later CTF deployed by Polymarket on Polygon, so
collection and position ids differ from Polymarket's.

question_id   = keccak256(utf8(text))
condition_id  = keccak256(abi.encodePacked(address oracle, bytes32 questionId, uint256 outcomeSlotCount))
collection_id = keccak256(abi.encodePacked(bytes32 conditionId, uint256 indexSet))
position_id   = uint256(keccak256(abi.encodePacked(address collateralToken, bytes32 collectionId)))
"""

from __future__ import annotations

from web3 import Web3

from ctfmarket.errors import InvalidAddress, InvalidIdentifier, InvalidOutcome

OUTCOME_SLOT_COUNT = 2
OUTCOME_NAMES = ("YES", "NO")


def to_address(value: str) -> str:
    """Return the checksum form of an address. Raises InvalidAddress."""
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidAddress(f"Not an address: {value!r}", value=value)
    return Web3.to_checksum_address(value)


def to_bytes32(value: str | bytes) -> bytes:
    if isinstance(value, bytes):
        raw = value
    else:
        if not isinstance(value, str) or not value.startswith("0x"):
            raise InvalidIdentifier(f"Expected 0x-prefixed bytes32 hex: {value!r}", value=value)
        try:
            raw = Web3.to_bytes(hexstr=value)
        except ValueError as e:
            raise InvalidIdentifier(f"Invalid hex: {value!r}", value=value) from e
    if len(raw) != 32:
        raise InvalidIdentifier(f"Expected 32 bytes, got {len(raw)}", value=value)
    return raw


def normalize_id(value: str | bytes) -> str:
    """Canonical lowercase 0x-hex form of a bytes32 identifier."""
    return Web3.to_hex(to_bytes32(value))


def question_id(text: str) -> str:
    """keccak256 of the human-readable question."""
    return Web3.to_hex(Web3.keccak(text=text))


def condition_id(oracle: str, question: str | bytes, outcome_slot_count: int = OUTCOME_SLOT_COUNT) -> str:
    digest = Web3.solidity_keccak(
        ["address", "bytes32", "uint256"],
        [to_address(oracle), to_bytes32(question), outcome_slot_count],
    )
    return Web3.to_hex(digest)


def index_set(outcome_index: int) -> int:
    """Bitmask of the single outcome slot (full binary partition: 0b01, 0b10)."""
    if outcome_index not in range(OUTCOME_SLOT_COUNT):
        raise InvalidOutcome(f"Outcome index must be 0 or 1, got {outcome_index}", outcome_index=outcome_index)
    return 1 << outcome_index


def collection_id(condition: str | bytes, outcome_index: int) -> str:
    digest = Web3.solidity_keccak(["bytes32", "uint256"], [to_bytes32(condition), index_set(outcome_index)])
    return Web3.to_hex(digest)


def position_id(collateral_token: str, condition: str | bytes, outcome_index: int) -> int:
    """ERC1155 token id of one outcome of a condition."""
    collection = to_bytes32(collection_id(condition, outcome_index))
    digest = Web3.solidity_keccak(["address", "bytes32"], [to_address(collateral_token), collection])
    return int.from_bytes(digest, "big")


def outcome_index(name: str) -> int:
    """Map 'YES'/'NO' (case-insensitive) or '0'/'1' to an outcome index."""
    key = str(name).strip().upper()
    if key in OUTCOME_NAMES:
        return OUTCOME_NAMES.index(key)
    if key in ("0", "1"):
        return int(key)
    raise InvalidOutcome(f"Unknown outcome: {name!r}", outcome=name)
