import random
import threading

from rockbench.errors import GenerationError

ID_WIDTH = 24


def format_id(n: int) -> str:
    return f"{n:0{ID_WIDTH}d}"


class IdSpace:
    """Owns the sequential id counter and the bound of ids known to exist.

    ``counter`` is the next id handed out in sequential id mode. ``bound`` is
    the exclusive upper limit used to pick update and patch targets. Both are
    mutated from many concurrent generation calls, so every read-modify-write
    happens under one lock. ``counter`` never falls below ``bound``.
    """

    def __init__(self, counter: int = 0, bound: int = 0) -> None:
        self._bound = bound
        self._counter = max(counter, bound)
        self._lock = threading.Lock()

    @property
    def counter(self) -> int:
        with self._lock:
            return self._counter

    @property
    def bound(self) -> int:
        with self._lock:
            return self._bound

    def next_sequential(self) -> str:
        with self._lock:
            value = self._counter
            self._counter += 1
        return format_id(value)

    def set_bound(self, n: int) -> None:
        if n < 0:
            raise ValueError(f"id bound must be non-negative, got {n}")
        with self._lock:
            self._bound = n
            self._counter = max(self._counter, n)

    def mixed_mode_id(self, update_percentage: float, rng: random.Random | None = None) -> tuple[str, bool]:
        """Return ``(id, is_new_insert)`` for one mixed-mode document.

        With probability ``update_percentage / 100`` an existing id in
        ``[0, bound)`` is returned. Otherwise ``bound`` itself is returned and
        advanced by one. An empty range always takes the insert branch.
        """
        rng = rng or random
        with self._lock:
            if self._bound > 0 and rng.random() * 100 < update_percentage:
                return format_id(rng.randrange(self._bound)), False
            value = self._bound
            self._bound += 1
            self._counter = max(self._counter, self._bound)
        return format_id(value), True


def sample_unique(limit: int, count: int, rng: random.Random | None = None) -> list[int]:
    """Draw ``count`` distinct integers uniformly from ``[0, limit)``."""
    if count < 0:
        raise GenerationError(f"cannot sample a negative number of ids ({count})")
    if count > limit:
        raise GenerationError(f"cannot sample {count} unique ids from a range of {limit}")
    rng = rng or random
    # random.sample rejects duplicates against a set while count is small
    # relative to limit and switches to a partial shuffle otherwise.
    return rng.sample(range(limit), count)
