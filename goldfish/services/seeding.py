"""Deterministic seed derivation and cooperative cancellation.

Every random stream in a run comes from one top-level seed. Child seeds
are a hash of the parent seed and a position (grid point index, trial
index, stream name), so reruns are bit-reproducible and no generator is
shared between threads.
"""

import hashlib
import threading

from goldfish.core.exceptions import SimulationCancelled


def derive_seed(*parts: int | str) -> int:
    """Derive a 64-bit seed from a parent seed and position labels.

    Args:
        *parts: Parent seed followed by indices or stream names.

    Returns:
        Unsigned 64-bit integer, stable across processes and Python versions.
    """
    key = ":".join(str(part) for part in parts)
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


class CancellationToken:
    """Flag checked between trials to stop a long sweep early.

    Usage:
        token = CancellationToken()
        runner = ScenarioRunner(deck, cancellation=token)
        # from another thread
        token.cancel()
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SimulationCancelled()
