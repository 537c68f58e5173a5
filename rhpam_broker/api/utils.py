import logging

from starlette.requests import Request
from starlette.responses import JSONResponse

from rhpam_broker.models import ErrorResponse
from rhpam_broker.proc import AdapterCommandError
from rhpam_broker.services.errors import (
    AsyncRequiredException,
    BrokerException,
    IntegrityException,
    NotFoundException,
)

ERROR_STATUS = {
    IntegrityException: 400,
    NotFoundException: 404,
    AsyncRequiredException: 422,
}

ERROR_NAMES = {
    AsyncRequiredException: "AsyncRequired",
    NotFoundException: "NotFound",
    IntegrityException: "BadRequest",
}

logger = logging.getLogger(__name__)


def _exception_handler(request: Request, exc: Exception):
    status = ERROR_STATUS.get(type(exc), 500)
    if status >= 500:
        logger.exception("Unhandled broker error for path=%s: %s", request.url.path, exc)
    else:
        logger.warning("Request failed path=%s status=%s error=%s", request.url.path, status, exc)
    name = ERROR_NAMES.get(type(exc), "InternalServerError")
    body = ErrorResponse(error=name, description=str(exc))
    return JSONResponse(body.model_dump(), status_code=status)


def register_exception_handlers(app):
    app.exception_handler(BrokerException)(_exception_handler)
    app.exception_handler(AdapterCommandError)(_exception_handler)
    app.exception_handler(ValueError)(_exception_handler)
