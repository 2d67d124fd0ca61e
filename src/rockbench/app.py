import threading

import uvicorn
from fastapi import FastAPI

from rockbench.router import router
from rockbench.scheduler import Dispatcher


def create_app(dispatcher: Dispatcher) -> FastAPI:
    app = FastAPI()
    app.state.dispatcher = dispatcher
    app.include_router(router)
    return app


def start_status_server(app: FastAPI, port: int, log_level: str = "warning") -> threading.Thread:
    """Serve ``app`` from a daemon thread so it neither shares the dispatch loop nor takes over its signals."""
    server = uvicorn.Server(uvicorn.Config(app, host="0.0.0.0", port=port, log_level=log_level))
    thread = threading.Thread(target=server.run, name="status-server", daemon=True)
    thread.start()
    return thread
