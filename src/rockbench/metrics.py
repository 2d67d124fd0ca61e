from prometheus_client import Counter, Gauge, Summary

WRITES_COMPLETED = Counter(
    "writes_completed",
    "The total number of writes completed",
)

WRITES_ERRORED = Counter(
    "writes_errored",
    "The total number of writes errored",
)

PATCHES_COMPLETED = Counter(
    "patches_completed",
    "The total number of patches completed",
)

PATCHES_ERRORED = Counter(
    "patches_errored",
    "The total number of patches errored",
)

BYTES_SENT = Counter(
    "bytes_sent",
    "Payload bytes of requests the destination accepted",
)

EVENTS_INGESTED = Counter(
    "num_events_ingested",
    "Number of events sent to the destination",
)

E2E_LATENCY = Gauge(
    "e2e_latencies",
    "The most recent e2e latency in micro-seconds between client and the destination",
)

E2E_LATENCY_SUMMARY = Summary(
    "e2e_latencies_metric",
    "e2e latency in micro-seconds between client and the destination",
)

IN_FLIGHT = Gauge(
    "dispatch_in_flight",
    "Batches handed to the destination and not yet finished",
)


def record_writes_completed(count: int) -> None:
    WRITES_COMPLETED.inc(count)


def record_writes_errored(count: int) -> None:
    WRITES_ERRORED.inc(count)


def record_patches_completed(count: int) -> None:
    PATCHES_COMPLETED.inc(count)


def record_patches_errored(count: int) -> None:
    PATCHES_ERRORED.inc(count)


def record_bytes_sent(count: int) -> None:
    BYTES_SENT.inc(count)


def record_events_ingested(count: int) -> None:
    EVENTS_INGESTED.inc(count)


def record_e2e_latency(micros: float) -> None:
    E2E_LATENCY.set(micros)
    E2E_LATENCY_SUMMARY.observe(micros)
