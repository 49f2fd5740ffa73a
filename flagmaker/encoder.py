"""Serialise matched UVs into the flag string and parse it back.

Grammar::

    flag  := token ("," token)*
    token := u ":" v        # [-]digits "." exactly 6 digits; no exponent, nan or inf

A saved file is just this string, so loading it gives back something a
consumer cannot tell apart from a freshly generated flag.
"""

from __future__ import annotations

import re
from typing import Iterable, List

from flagmaker.config import UV_DECIMALS
from flagmaker.errors import FlagFormatError
from flagmaker.palette import UV

TOKEN_SEPARATOR = ","
PAIR_SEPARATOR = ":"

_COMPONENT = rf"-?[0-9]+\.[0-9]{{{UV_DECIMALS}}}"
_TOKEN_RE = re.compile(rf"({_COMPONENT}){PAIR_SEPARATOR}({_COMPONENT})")


def format_uv(uv: UV) -> str:
    return f"{uv[0]:.{UV_DECIMALS}f}{PAIR_SEPARATOR}{uv[1]:.{UV_DECIMALS}f}"


def encode(uvs: Iterable[UV]) -> str:
    """Join UVs, in the order given, into an encoded flag."""
    return TOKEN_SEPARATOR.join(format_uv(uv) for uv in uvs)


def decode(text: str) -> List[UV]:
    """Parse an encoded flag into ``(u, v)`` pairs."""
    text = text.strip()
    if not text:
        raise FlagFormatError("Flag content was empty")

    uvs: List[UV] = []
    for position, token in enumerate(text.split(TOKEN_SEPARATOR)):
        match = _TOKEN_RE.fullmatch(token)
        if match is None:
            raise FlagFormatError(f"Malformed token #{position}: {token!r}")
        uvs.append((float(match.group(1)), float(match.group(2))))
    return uvs


def is_valid(text: str) -> bool:
    try:
        decode(text)
    except FlagFormatError:
        return False
    return True
