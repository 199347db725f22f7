"""Main entry point for the grading web application."""

import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from gradeflow.core import BootConfiguration, di, GradeflowContainer
from gradeflow.core.config.web import GradeflowWebSettings
from gradeflow.core.provider import LoggingProvider
from gradeflow.grading.errors import GradingError
from gradeflow.lib.json import FastAPIJSONResponse

from .route import router

BootVariable = "__Gradeflow_BOOT"


@di.inject
def _create_app(
    config: GradeflowWebSettings = di.Provide["config.web.gradeflow", di.as_(GradeflowWebSettings)],
    logging: LoggingProvider = di.Provide["logging"],
) -> FastAPI:
    logger = logging.get_logger()
    app = FastAPI(
        title="Gradeflow",
        description="Multi-round manual grading workflow",
        version="0.1.0",
        default_response_class=FastAPIJSONResponse,
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(GradingError)
    def handle_grading_error(request: Request, exc: GradingError) -> FastAPIJSONResponse:
        logger.info(
            "request failed",
            extra={
                "path": request.url.path,
                "kind": exc.kind,
                "error": exc.message,
                **exc.context,
            },
        )
        return FastAPIJSONResponse({"kind": exc.kind, "message": exc.message}, status_code=exc.status_code)

    app.include_router(router)
    return app


def create_app() -> FastAPI:
    """Factory function for uvicorn."""
    boot_vars = os.getenv(BootVariable)
    if boot_vars:
        boot_cf = BootConfiguration.model_validate_json(boot_vars)
        ct = GradeflowContainer()
        GradeflowContainer.boot(ct, **dict(boot_cf))
        ct.wire(modules=["gradeflow.web.gradeflow.main", "gradeflow.auth.middleware", "gradeflow.auth.jwt"])
        return _create_app(
            config=GradeflowWebSettings(**ct.config.web.gradeflow()),
            logging=ct.logging(),
        )
    return _create_app()
