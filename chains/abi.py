"""
chains/abi.py - Minimal ABI word encoding for the handful of calls XARB makes.

Selectors are keccak256(signature)[:4], precomputed.
"""

WORD_HEX = 64

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def _strip(hex_str: str) -> str:
    return hex_str[2:] if hex_str.startswith("0x") else hex_str


def encode_uint(value: int) -> str:
    """uint256 as one 32-byte word."""
    if value < 0:
        raise ValueError(f"uint cannot be negative: {value}")
    if value >= 2**256:
        raise ValueError("uint overflows 256 bits")
    return hex(value)[2:].zfill(WORD_HEX)


def encode_address(address: str) -> str:
    """Address left-padded to 32 bytes."""
    body = _strip(address).lower()
    if len(body) != 40:
        raise ValueError(f"Invalid address: {address}")
    return body.zfill(WORD_HEX)


def encode_bytes32(value: str) -> str:
    body = _strip(value).lower()
    if len(body) != WORD_HEX:
        raise ValueError(f"bytes32 must be 32 bytes: {value}")
    return body


def encode_address_array(addresses: list[str]) -> str:
    """Tail section of a dynamic address[]: length followed by elements."""
    return encode_uint(len(addresses)) + "".join(encode_address(a) for a in addresses)


def encode_call(selector: str, *words: str, tail: str = "") -> str:
    """Assemble 0x + selector + head words + dynamic tail."""
    return "0x" + _strip(selector) + "".join(words) + tail


def decode_words(hex_result: str) -> list[int]:
    """Split return data into uint words."""
    data = _strip(hex_result or "")
    if len(data) % WORD_HEX != 0:
        raise ValueError(f"Return data not word-aligned: {len(data)} chars")
    return [int(data[i:i + WORD_HEX], 16) for i in range(0, len(data), WORD_HEX)]


def decode_uint_array(hex_result: str) -> list[int]:
    """Decode an ABI-encoded single uint256[] return value."""
    words = decode_words(hex_result)
    if not words:
        raise ValueError("Empty return data")
    offset = words[0] // 32
    if offset >= len(words):
        raise ValueError("Array offset out of range")
    length = words[offset]
    items = words[offset + 1:offset + 1 + length]
    if len(items) != length:
        raise ValueError(f"Array truncated: expected {length}, got {len(items)}")
    return items


def sum_transfers_to(logs: list[dict], token: str, recipient: str) -> int | None:
    """
    Total ERC-20 Transfer amount of token credited to recipient in a receipt.

    None when the receipt holds no such Transfer.
    """
    token_lower = token.lower()
    recipient_topic = "0x" + encode_address(recipient)
    total = None
    for log in logs:
        topics = [t.lower() for t in log.get("topics") or []]
        if len(topics) != 3 or topics[0] != TRANSFER_TOPIC:
            continue
        if (log.get("address") or "").lower() != token_lower or topics[2] != recipient_topic:
            continue
        total = (total or 0) + int(_strip(log.get("data") or "0x0") or "0", 16)
    return total
