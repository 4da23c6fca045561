"""Cosine similarity and vector sanitization."""
import math
from typing import Any, List, Mapping, Sequence

import numpy as np


def _is_vector(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return False
    return hasattr(value, "__len__") and hasattr(value, "__getitem__")


def _to_float(value: Any) -> float:
    """Coerce one vector element; anything non-numeric or non-finite becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def parse_vector(value: Any) -> List[float]:
    """Sanitize an embedding read from an external source.

    Args:
        value: Anything that may hold a vector (list, tuple, None, ...)

    Returns:
        List of floats; non-sequences yield ``[]`` and non-numeric
        elements are coerced to ``0.0``
    """
    if not _is_vector(value):
        return []
    return [_to_float(v) for v in value]


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity between two vectors.

    Only the first ``min(len(a), len(b))`` dimensions are compared; trailing
    elements of the longer vector are ignored. Returns 0 for non-sequences,
    empty vectors and zero-magnitude vectors.
    """
    va = np.asarray(parse_vector(a), dtype=np.float64)
    vb = np.asarray(parse_vector(b), dtype=np.float64)

    length = min(va.size, vb.size)
    if length == 0:
        return 0.0
    va, vb = va[:length], vb[:length]

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))
