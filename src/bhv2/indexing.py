"""
Index conversion between MATLAB subscripts and linear offsets.

Column-major: the first dimension varies fastest.
Subscripts are 1-based (MATLAB convention), linear indices 0-based.
"""

from typing import Sequence, Tuple


def sub2ind(shape: Sequence[int], subscripts: Sequence[int]) -> int:
    """
    Convert 1-based subscripts to a 0-based linear index.

    Args:
        shape: Dimension sizes
        subscripts: One 1-based subscript per dimension

    Returns:
        0-based linear index

    Raises:
        ValueError: If the number of subscripts does not match the rank
        IndexError: If any subscript is outside its dimension
    """
    if len(subscripts) != len(shape):
        raise ValueError(
            f"Expected {len(shape)} subscripts, got {len(subscripts)}"
        )
    index = 0
    stride = 1
    for dim, (size, sub) in enumerate(zip(shape, subscripts)):
        if sub < 1 or sub > size:
            raise IndexError(
                f"Subscript {sub} out of range for dimension {dim + 1} of size {size}"
            )
        index += (sub - 1) * stride
        stride *= size
    return index


def ind2sub(shape: Sequence[int], index: int) -> Tuple[int, ...]:
    """
    Convert a 0-based linear index to 1-based subscripts.

    Raises:
        IndexError: If index is outside the array
    """
    total = 1
    for size in shape:
        total *= size
    if index < 0 or index >= total:
        raise IndexError(f"Linear index {index} out of range for {total} elements")
    subscripts = []
    for size in shape:
        subscripts.append(index % size + 1)
        index //= size
    return tuple(subscripts)


__all__ = ["sub2ind", "ind2sub"]
