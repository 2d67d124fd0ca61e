from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from rockbench.workload import PATCH_MODES, DestinationKind, IdMode, PatchStyle, RunMode, WorkloadSpec

PATCH_DESTINATIONS = frozenset({DestinationKind.ROCKSET, DestinationKind.NULL})


class Settings(BaseSettings):
    wps: int = Field(gt=0)
    batch_size: int = Field(gt=0)
    destination: DestinationKind
    num_docs: int | None = None
    num_patches: int | None = None
    mode: RunMode = RunMode.ADD
    id_mode: IdMode = IdMode.UUID
    patch_mode: PatchStyle = PatchStyle.REPLACE
    pps: int | None = Field(default=None, gt=0)
    update_percentage: float = Field(default=0.0, ge=0, le=100)
    start_offset: int = Field(default=0, ge=0)
    num_clusters: int = Field(default=0, ge=0)
    hot_cluster_percentage: float | None = Field(default=None, le=100)
    max_in_flight: int = Field(default=0, ge=0)

    export_metrics: bool = False
    metrics_port: int = 9161
    track_latency: bool = False
    replicas: int = Field(default=2, gt=0)
    latency_poll_seconds: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"

    rockset_api_key: str | None = None
    rockset_api_server: str | None = None
    rockset_collection: str | None = None

    elastic_auth: str | None = None
    elastic_url: str | None = None
    elastic_index: str | None = None

    @field_validator("destination", mode="before")
    @classmethod
    def _lower_destination(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("num_docs", "num_patches")
    @classmethod
    def _negative_is_unbounded(cls, value: int | None) -> int | None:
        # -1 was the historical "run forever" value
        return None if value is not None and value < 0 else value

    @model_validator(mode="after")
    def _check_combinations(self) -> "Settings":
        if self.mode in PATCH_MODES:
            if self.id_mode is not IdMode.SEQUENTIAL:
                raise ValueError(f"mode {self.mode} supports id_mode 'sequential' only")
            if not self.num_docs or self.num_docs <= 0:
                raise ValueError(f"mode {self.mode} requires a positive num_docs to patch against")
            if self.num_docs < self.batch_size:
                raise ValueError("num_docs must be at least batch_size to draw a batch of unique patch targets")
            if self.destination not in PATCH_DESTINATIONS:
                raise ValueError(f"patches are not supported for destination {self.destination}")
        if self.mode is RunMode.MIXED:
            if self.id_mode is not IdMode.SEQUENTIAL:
                raise ValueError("mixed mode supports id_mode 'sequential' only")
            if self.start_offset <= 0:
                raise ValueError("mixed mode requires a positive start_offset of existing documents")
        if self.destination is DestinationKind.ROCKSET:
            self._require("rockset_api_key", "rockset_api_server", "rockset_collection")
            if len(self.rockset_collection.split(".")) != 2:
                raise ValueError("rockset_collection should have the format <workspace_name>.<collection_name>")
        if self.destination is DestinationKind.ELASTIC:
            self._require("elastic_auth", "elastic_url", "elastic_index")
        return self

    def _require(self, *names: str) -> None:
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise ValueError(f"destination {self.destination} requires {', '.join(missing)}")

    @property
    def patches_per_second(self) -> int:
        return self.pps if self.pps is not None else self.wps

    def workload_spec(self, identifier: str, explicit_ids: bool = True) -> WorkloadSpec:
        return WorkloadSpec(
            destination=self.destination,
            generator_identifier=identifier,
            batch_size=self.batch_size,
            run_mode=self.mode,
            id_mode=self.id_mode,
            update_percentage=self.update_percentage,
            num_clusters=self.num_clusters,
            hot_cluster_percentage=self.hot_cluster_percentage,
            explicit_ids=explicit_ids,
        )
