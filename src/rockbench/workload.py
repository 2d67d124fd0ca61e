from dataclasses import dataclass
from enum import StrEnum


class DestinationKind(StrEnum):
    ROCKSET = "rockset"
    ELASTIC = "elastic"
    NULL = "null"


class RunMode(StrEnum):
    ADD = "add"
    PATCH = "patch"
    ADD_THEN_PATCH = "add_then_patch"
    MIXED = "mixed"


class IdMode(StrEnum):
    UUID = "uuid"
    SEQUENTIAL = "sequential"


class PatchStyle(StrEnum):
    REPLACE = "replace"
    ADD = "add"


PATCH_MODES = (RunMode.PATCH, RunMode.ADD_THEN_PATCH)


@dataclass(frozen=True)
class WorkloadSpec:
    destination: DestinationKind
    generator_identifier: str
    batch_size: int
    run_mode: RunMode = RunMode.ADD
    id_mode: IdMode = IdMode.UUID
    update_percentage: float = 0.0
    num_clusters: int = 0
    hot_cluster_percentage: float | None = None
    explicit_ids: bool = True
