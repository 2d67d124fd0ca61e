import random
import string
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from rockbench.errors import GenerationError
from rockbench.ids import IdSpace
from rockbench.workload import IdMode, RunMode, WorkloadSpec

CLUSTER_FIELD = "cluster_id"
HOT_CLUSTER_KEY = "cluster-0"

FIRST_NAMES = ["Ada", "Alan", "Barbara", "Claude", "Donald", "Edsger", "Frances", "Grace", "Ken", "Leslie", "Margaret", "Niklaus"]
LAST_NAMES = ["Lovelace", "Turing", "Liskov", "Shannon", "Knuth", "Dijkstra", "Allen", "Hopper", "Thompson", "Lamport", "Hamilton", "Wirth"]
COMPANIES = ["facebook", "google", "rockset", "tesla", "uber", "lyft"]
STREETS = ["1st", "2nd", "3rd", "4th", "5th", "6th", "7th", "8th", "9th", "10th"]
CITIES = ["SF", "San Mateo", "San Jose", "Mountain View", "Menlo Park", "Palo Alto"]
AGES = [15, 27, 61]
WORDS = [
    "lorem", "ipsum", "dolor", "sit", "amet", "consectetur", "adipiscing", "elit", "sed", "do",
    "eiusmod", "tempor", "incididunt", "ut", "labore", "et", "dolore", "magna", "aliqua", "enim",
    "minim", "veniam", "quis", "nostrud", "exercitation", "ullamco", "laboris", "nisi", "aliquip", "commodo",
]


def current_time_micros() -> int:
    return time.time_ns() // 1_000


def random_identifier(n: int = 10, rng: random.Random | None = None) -> str:
    rng = rng or random
    return "".join(rng.choices(string.ascii_letters + string.digits, k=n))


def random_sentence(rng: random.Random, words: int = 10) -> str:
    return " ".join(rng.choices(WORDS, k=words)).capitalize() + "."


def random_paragraph(rng: random.Random, sentences: int = 8) -> str:
    return " ".join(random_sentence(rng, rng.randint(8, 14)) for _ in range(sentences))


def random_name(rng: random.Random) -> dict[str, str]:
    return {"first": rng.choice(FIRST_NAMES), "last": rng.choice(LAST_NAMES)}


def random_email(rng: random.Random) -> str:
    user = "".join(rng.choices(string.ascii_lowercase, k=8))
    return f"{user}@{rng.choice(COMPANIES)}.com"


def random_phone(rng: random.Random) -> str:
    return f"{rng.randint(200, 999)}-{rng.randint(200, 999)}-{rng.randint(1000, 9999)}"


def random_coordinates(rng: random.Random) -> dict[str, float]:
    return {"latitude": round(rng.uniform(-90, 90), 6), "longitude": round(rng.uniform(-180, 180), 6)}


def random_tag(rng: random.Random) -> str:
    return "".join(rng.choices(string.ascii_lowercase, k=rng.randint(4, 9)))


def random_payload(rng: random.Random) -> dict[str, Any]:
    """A fixed-shape record of mixed scalar, object and array fields, roughly 2 KB as JSON."""
    registered = datetime.fromtimestamp(rng.randint(946684800, 1893456000), UTC)
    return {
        "guid": str(uuid.UUID(int=rng.getrandbits(128), version=4)),
        "is_active": rng.random() < 0.5,
        "balance": round(rng.uniform(0, 10_000), 2),
        "picture": f"https://picsum.photos/seed/{random_tag(rng)}/200/200",
        "age": rng.choice(AGES),
        "name": random_name(rng),
        "company": rng.choice(COMPANIES),
        "email": random_email(rng),
        "phone": random_phone(rng),
        "address": {
            "street": rng.choice(STREETS),
            "city": rng.choice(CITIES),
            "zip_code": rng.randint(10000, 99999),
            "coordinates": random_coordinates(rng),
        },
        "about": random_sentence(rng),
        "registered": registered.isoformat(),
        "tags": [random_tag(rng) for _ in range(rng.randint(3, 7))],
        "friends": {f"friend{i}": {"name": random_name(rng), "age": rng.choice(AGES)} for i in range(1, 11)},
        "greeting": random_paragraph(rng),
    }


class DocumentGenerator:
    def __init__(self, spec: WorkloadSpec, id_space: IdSpace, rng: random.Random | None = None) -> None:
        self.spec = spec
        self.id_space = id_space
        self._rng = rng or random.Random()

    def generate(self) -> dict[str, Any]:
        doc = random_payload(self._rng)
        if self.spec.explicit_ids:
            doc["_id"] = self._next_id()
        if self.spec.num_clusters > 0:
            doc[CLUSTER_FIELD] = self.cluster_key()
        now = current_time_micros()
        doc["_event_time"] = now
        doc["_ts"] = now
        doc["generator_identifier"] = self.spec.generator_identifier
        return doc

    def generate_batch(self, size: int) -> list[dict[str, Any]]:
        try:
            return [self.generate() for _ in range(size)]
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"failed to generate document: {e}") from e

    def _next_id(self) -> str:
        if self.spec.run_mode is RunMode.MIXED:
            doc_id, _ = self.id_space.mixed_mode_id(self.spec.update_percentage, self._rng)
            return doc_id
        if self.spec.id_mode is IdMode.SEQUENTIAL:
            return self.id_space.next_sequential()
        return str(uuid.uuid4())

    def cluster_key(self) -> str:
        hot = self.spec.hot_cluster_percentage
        if hot is not None and hot > 0 and self._rng.random() * 100 < hot:
            return HOT_CLUSTER_KEY
        return f"cluster-{self._rng.randrange(self.spec.num_clusters)}"
