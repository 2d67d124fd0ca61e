import httpx

from rockbench.errors import DestinationError

DEFAULT_LIMITS = httpx.Limits(max_connections=None, max_keepalive_connections=100)
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


def create_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(limits=DEFAULT_LIMITS, timeout=DEFAULT_TIMEOUT)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    content: bytes,
    headers: dict[str, str],
) -> httpx.Response:
    """Issue one request; transport failures and non-200 replies raise DestinationError."""
    try:
        response = await client.request(method, url, content=content, headers=headers)
    except httpx.HTTPError as e:
        raise DestinationError(f"{method} {url} failed: {e}") from e
    if response.status_code != httpx.codes.OK:
        raise DestinationError(
            f"{method} {url} returned {response.status_code}: {response.text}",
            status_code=response.status_code,
            body=response.text,
        )
    return response
