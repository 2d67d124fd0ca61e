from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from rockbench.dependencies import get_dispatcher
from rockbench.models import StatusResponse
from rockbench.scheduler import Dispatcher, Phase

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/ready")
async def ready(dispatcher: Dispatcher = Depends(get_dispatcher)) -> dict:
    if dispatcher.phase is Phase.IDLE:
        raise HTTPException(status_code=503)
    return {"status": "ok"}


@router.get("/status")
async def status(dispatcher: Dispatcher = Depends(get_dispatcher)) -> StatusResponse:
    return StatusResponse(
        generator_identifier=dispatcher.spec.generator_identifier,
        mode=str(dispatcher.settings.mode),
        phase=str(dispatcher.phase),
        documents_issued=dispatcher.documents_issued,
        patches_issued=dispatcher.patches_issued,
        in_flight=dispatcher.in_flight,
        id_bound=dispatcher.id_space.bound,
    )


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
