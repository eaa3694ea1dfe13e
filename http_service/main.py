import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response

from . import __version__
from .config import Settings
from .models import ServiceResponse

log = logging.getLogger(__name__)

router = APIRouter()

ROOT_MESSAGE = (
    "This is a http service[{name}]! If you see this then the "
    "service is deployed as working as expected :)"
)


# === Helpers ===


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def log_request(request: Request) -> None:
    client = f"{request.client.host}:{request.client.port}" if request.client else "-"
    log.info("received a %s request on %s from %s", request.method, request.url.path, client)


def reply(settings: Settings, message: str) -> ServiceResponse:
    return ServiceResponse(
        service_name=settings.service_name,
        message=message,
        hostname=settings.hostname,
    )


# === Routes ===


@router.get("/", response_model=ServiceResponse, status_code=200)
def root(request: Request, settings: Settings = Depends(get_settings)):
    log_request(request)
    return reply(settings, ROOT_MESSAGE.format(name=settings.service_name))


@router.get("/items", response_model=ServiceResponse, status_code=200)
def list_items(request: Request, settings: Settings = Depends(get_settings)):
    log_request(request)
    return reply(settings, "list items request received")


@router.put("/items", response_model=ServiceResponse, status_code=201)
def put_items(request: Request, settings: Settings = Depends(get_settings)):
    log_request(request)
    return reply(settings, "put items request received")


@router.post("/items", response_model=ServiceResponse, status_code=202)
def update_items(request: Request, settings: Settings = Depends(get_settings)):
    log_request(request)
    return reply(settings, "update items request received")


@router.delete("/items", status_code=204, response_class=Response)
def delete_items(request: Request):
    log_request(request)
    # no body on 204
    return Response(status_code=204, media_type="application/json")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    app = FastAPI(title="HTTP Service", version=__version__)
    app.state.settings = settings if settings is not None else Settings()
    app.include_router(router)
    return app
