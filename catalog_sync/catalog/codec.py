"""Product set encoding.

A catalog's product set is stored as one text value: a compact JSON
array of positive product IDs in display order. An empty set is stored
as the empty string.
"""

import json
from collections.abc import Iterable
from typing import Any

# Upper bound of the integer ID columns
MAX_PRODUCT_ID = 2**31 - 1


def coerce_product_id(value: Any) -> int | None:
    """Coerce a stored member to a product ID.

    Integers, integral floats and integer strings are accepted.

    Args:
        value: Raw list member.

    Returns:
        Positive integer ID within the column range, or None if the value
        is not a usable ID.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        product_id = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        product_id = int(value)
    elif isinstance(value, str):
        try:
            product_id = int(value.strip())
        except ValueError:
            return None
    else:
        return None

    return product_id if 0 < product_id <= MAX_PRODUCT_ID else None


def normalize_product_ids(values: Iterable[Any]) -> list[int]:
    """Deduplicate IDs keeping first occurrence, dropping invalid ones.

    Args:
        values: Candidate product IDs.

    Returns:
        Positive unique IDs in input order.
    """
    # dict keeps insertion order
    seen: dict[int, None] = {}
    for value in values:
        product_id = coerce_product_id(value)
        if product_id is not None and product_id not in seen:
            seen[product_id] = None
    return list(seen)


class ProductSetCodec:
    """Round-trips a product set through its stored text form.

    Example usage:
        codec = ProductSetCodec()
        raw = codec.encode([3, 1, 2, 1])  # "[3,1,2]"
        codec.decode(raw)                 # [3, 1, 2]
    """

    @staticmethod
    def encode(product_ids: Iterable[Any]) -> str:
        """Encode product IDs for storage.

        Args:
            product_ids: Product IDs in display order.

        Returns:
            JSON array text, or "" when no valid ID remains.
        """
        normalized = normalize_product_ids(product_ids)
        if not normalized:
            return ""
        return json.dumps(normalized, separators=(",", ":"))

    @staticmethod
    def decode(raw: str | None) -> list[int]:
        """Decode a stored product set.

        Malformed input decodes to an empty list.

        Args:
            raw: Stored text value.

        Returns:
            Product IDs in stored order.
        """
        if not raw:
            return []

        try:
            decoded = json.loads(raw)
        except (TypeError, ValueError, RecursionError):
            return []

        if not isinstance(decoded, list):
            return []

        return normalize_product_ids(decoded)
