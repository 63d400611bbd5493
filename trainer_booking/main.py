import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from trainer_booking.core import config
from trainer_booking.core.errors import AppError, InternalError
from trainer_booking.middleware.request_logging import log_requests
from trainer_booking.repositories.base import AppointmentRepository
from trainer_booking.repositories.factory import new_repository
from trainer_booking.routes import appointment_routes
from trainer_booking.services.appointment_service import AppointmentService

logger = logging.getLogger(__name__)


def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error('Internal error on %s %s: %s', request.method, request.url.path, exc, exc_info=exc.cause)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={'error': 'internal server error'},
        )

    return JSONResponse(status_code=exc.status_code, content={'error': exc.message})


def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error('Unexpected error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'error': 'internal server error'},
    )


def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()) if part not in {'body', 'query', 'path'})
        message = error.get('msg', 'invalid value')
        messages.append(f'{location}: {message}' if location else message)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'error': '; '.join(messages) or 'invalid request'},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.repository.close()


def create_app(repository: AppointmentRepository | None = None) -> FastAPI:
    app = FastAPI(title='Trainer Booking API', version=config.SERVICE_VERSION, lifespan=lifespan)

    repository = repository if repository is not None else new_repository()
    app.state.repository = repository
    app.state.appointment_service = AppointmentService(repository)

    app.middleware('http')(log_requests)
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.get('/')
    def root():
        return {
            'status': 'Trainer Booking API Running',
            'service': config.SERVICE_NAME,
            'version': config.SERVICE_VERSION,
            'commit': config.COMMIT_SHA,
            'build_time': config.BUILD_TIME,
        }

    app.include_router(appointment_routes.router, prefix='/api/v1')
    return app


app = create_app()
