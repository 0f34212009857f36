import random
from typing import Sequence, TypeVar

from imgbed.models import AssetRecord

T = TypeVar("T")


def sample_without_replacement(pool: Sequence[T], k: int, rng: random.Random | None = None) -> list[T]:
    """
    Draw min(k, len(pool)) distinct elements uniformly at random.

    Each draw swaps the chosen element with the last one and shrinks the pool by one.
    """
    rng = rng or random.Random()
    remaining = list(pool)
    result = []
    for _ in range(min(k, len(remaining))):
        i = rng.randrange(len(remaining))
        remaining[i], remaining[-1] = remaining[-1], remaining[i]
        result.append(remaining.pop())
    return result


def sample_dashboard(
    assets: Sequence[AssetRecord], size: int = 20, rng: random.Random | None = None
) -> tuple[list[AssetRecord], list[AssetRecord]]:
    """Split the index into the `size` most recent images (by descending path) and `size` random others"""
    ordered = sorted(assets, key=lambda a: a.path, reverse=True)
    recent, others = ordered[:size], ordered[size:]
    return recent, sample_without_replacement(others, size, rng)
