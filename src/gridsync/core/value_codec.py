"""Scalar token codec for the delta protocol.

A token is a one-character format tag followed by its body:

    <48656c6c6f   encoded: hex byte pairs, one character per pair
    >Hello        literal: body returned verbatim (any tag other than '<')

// [LAW:single-enforcer] decode() is the only place tokens become display text.

Malformed hex is accepted, not raised. Each pair is parsed from its longest
leading run of hex digits, so "1z" yields "\\x01" and "zz" yields "\\x00".
A server that emits garbage gets garbage cells, and the reconciler never sees
a difference because the same decoded text is written and read back.
"""

ENCODED_MARKER = "<"
LITERAL_MARKER = ">"

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _parse_pair(pair: str) -> int:
    digits = ""
    for ch in pair:
        if ch not in _HEX_DIGITS:
            break
        digits += ch
    return int(digits, 16) if digits else 0


def decode(token: str) -> str:
    """Decode one wire token into display text."""
    body = token[1:]
    if not token.startswith(ENCODED_MARKER):
        return body
    return "".join(chr(_parse_pair(body[i : i + 2])) for i in range(0, len(body), 2))


def encode_hex(text: str) -> str:
    """Encode Latin-1 text as an encoded token.

    Raises:
        UnicodeEncodeError: If text has characters above U+00FF, which one
            byte pair cannot carry.
    """
    return ENCODED_MARKER + text.encode("latin-1").hex()


def encode_literal(text: str) -> str:
    """Wrap text as a literal token. The caller keeps delimiters out of text."""
    return LITERAL_MARKER + text
