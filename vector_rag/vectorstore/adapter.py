"""Fit embeddings to a collection's fixed vector size."""

from collections.abc import Sequence


def resize_vector(vector: Sequence[float], target_dimension: int) -> list[float]:
    """Truncate or zero-pad a vector to exactly `target_dimension` elements.

    Truncation keeps the leading elements and drops the tail. This loses
    information for models whose native size exceeds the collection size.
    A negative target is treated as 0.

    Args:
        vector: Embedding in the provider's native dimension.
        target_dimension: Required length.

    Returns:
        A new list of length `max(target_dimension, 0)`.
    """
    target_dimension = max(target_dimension, 0)

    if len(vector) >= target_dimension:
        return list(vector[:target_dimension])
    return list(vector) + [0.0] * (target_dimension - len(vector))
