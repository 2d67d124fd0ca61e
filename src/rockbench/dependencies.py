from functools import lru_cache

from fastapi import Request

from rockbench.config import Settings
from rockbench.scheduler import Dispatcher


@lru_cache
def get_settings() -> Settings:
    return Settings()


async def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher
