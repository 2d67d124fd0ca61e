import random
import threading
from collections.abc import Callable, Iterator
from typing import Any

from rockbench.documents import (
    AGES,
    CITIES,
    COMPANIES,
    current_time_micros,
    random_coordinates,
    random_email,
    random_name,
    random_sentence,
    random_tag,
)
from rockbench.errors import GenerationError
from rockbench.ids import IdSpace, format_id, sample_unique
from rockbench.workload import PatchStyle

Mutation = dict[str, Any]
Template = Callable[[random.Random], Mutation]


def _replace(path: str, value: Callable[[random.Random], Any]) -> Template:
    return lambda rng: {"op": "replace", "path": path, "value": value(rng)}


def _add(path: str, value: Callable[[random.Random], Any]) -> Template:
    return lambda rng: {"op": "add", "path": path, "value": value(rng)}


def _new_field(rng: random.Random) -> str:
    return f"/extra_{random_tag(rng)}"


REPLACE_TEMPLATES: list[Template] = [
    _replace("/is_active", lambda rng: rng.random() < 0.5),
    _replace("/balance", lambda rng: round(rng.uniform(0, 10_000), 2)),
    _replace("/age", lambda rng: rng.choice(AGES)),
    _replace("/company", lambda rng: rng.choice(COMPANIES)),
    _replace("/email", random_email),
    _replace("/about", random_sentence),
    _replace("/name/first", lambda rng: random_name(rng)["first"]),
    _replace("/address/city", lambda rng: rng.choice(CITIES)),
    _replace("/address/coordinates/latitude", lambda rng: random_coordinates(rng)["latitude"]),
    _replace("/friends/friend3/age", lambda rng: rng.choice(AGES)),
    _replace("/tags/0", random_tag),
]

ADD_TEMPLATES: list[Template] = [
    lambda rng: {"op": "add", "path": _new_field(rng), "value": random_sentence(rng)},
    lambda rng: {"op": "add", "path": _new_field(rng), "value": rng.randint(0, 1_000_000)},
    lambda rng: {"op": "add", "path": _new_field(rng), "value": rng.random() < 0.5},
    lambda rng: {"op": "add", "path": _new_field(rng), "value": {"name": random_name(rng), "age": rng.choice(AGES)}},
    _add("/tags/-", random_tag),
]

TEMPLATES = {
    PatchStyle.REPLACE: REPLACE_TEMPLATES,
    PatchStyle.ADD: ADD_TEMPLATES,
}


class PatchTemplateStream:
    """Endless stream of single-field mutations for one patch style.

    Every pass over the style's template catalog is shuffled independently, so
    consumers never see a fixed cycle. Values are produced lazily, one per
    ``next()``; many consumers may share one stream and each value is handed
    out exactly once.
    """

    def __init__(self, style: PatchStyle, rng: random.Random | None = None) -> None:
        self.style = PatchStyle(style)
        self._rng = rng or random.Random()
        self._catalog = TEMPLATES[self.style]
        self._pass: list[Template] = []
        self._lock = threading.Lock()

    def __iter__(self) -> Iterator[Mutation]:
        return self

    def __next__(self) -> Mutation:
        with self._lock:
            if not self._pass:
                self._pass = list(self._catalog)
                self._rng.shuffle(self._pass)
            template = self._pass.pop()
            return template(self._rng)


def touch_op(now: int | None = None) -> Mutation:
    return {"op": "add", "path": "/_ts", "value": now if now is not None else current_time_micros()}


def generate_patches(
    id_space: IdSpace,
    stream: Iterator[Mutation],
    count: int,
    rng: random.Random | None = None,
) -> list[dict[str, Any]]:
    """Build ``count`` patches against distinct ids below the current bound."""
    bound = id_space.bound
    if bound == 0:
        raise GenerationError("no documents to patch: id bound is 0")
    ids = sample_unique(bound, count, rng)
    now = current_time_micros()
    return [{"_id": format_id(i), "patch": [next(stream), touch_op(now)]} for i in ids]
