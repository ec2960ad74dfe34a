"""Search an encoder's quality setting for output closest to a target byte size."""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from app.errors import NoCandidateProduced

logger = logging.getLogger("converter.quality")

QUALITY_MIN = 10
QUALITY_MAX = 100
# ceil(log2(90)) probes resolve the 10..100 range to a single step
SEARCH_ITERATIONS = 7


@dataclass(frozen=True)
class QualitySearchResult:
    quality: int
    data: bytes


def search_quality(
    target_bytes: int,
    encode_at: Callable[[int], Optional[bytes]],
    min_quality: int = QUALITY_MIN,
    max_quality: int = QUALITY_MAX,
    iterations: int = SEARCH_ITERATIONS,
) -> QualitySearchResult:
    """
    Bisect the quality range for a fixed number of probes and return the best candidate seen.

    Output size is only roughly monotonic in quality, so the closest probe is kept
    rather than the last one. Exceptions from encode_at propagate.
    """
    lo, hi = min_quality, max_quality
    best_quality: Optional[int] = None
    best_output: Optional[bytes] = None
    best_delta: Optional[int] = None

    for _ in range(iterations):
        # (lo + hi) / 2 rounded half up, kept in range once the bounds cross
        quality = min(max((lo + hi + 1) // 2, min_quality), max_quality)
        candidate = encode_at(quality)
        if candidate is None:
            continue
        size = len(candidate)
        delta = abs(size - target_bytes)
        if best_delta is None or delta < best_delta:
            best_quality, best_output, best_delta = quality, candidate, delta
        logger.debug("quality=%s size=%s target=%s delta=%s", quality, size, target_bytes, delta)
        if size > target_bytes:
            hi = quality - 1
        else:
            lo = quality + 1

    if best_output is None:
        raise NoCandidateProduced()
    return QualitySearchResult(quality=best_quality, data=best_output)
