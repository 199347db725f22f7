import os
import typing as t

import uvicorn

import gradeflow.lib.cli as click
from gradeflow.core import BootConfiguration, di
from gradeflow.core.config import LoggingSettings, WebSettings
from gradeflow.web.gradeflow.main import BootVariable


class ServeConfig(t.TypedDict):
    host: str
    port: int


def _get_app_config(app_name: str, web_cf: WebSettings) -> tuple[str, ServeConfig]:
    """Get app import path and serve config by convention.

    Apps follow the pattern:
    - Config: web_cf.{app_name}
    - Module: gradeflow.web.{app_name}:create_app
    """
    cf = getattr(web_cf, app_name, None)
    if cf is None:
        raise click.ClickException(f"unknown app '{app_name}' - not configured in web.yaml")

    app_path = f"gradeflow.web.{app_name}:create_app"
    uvi_cf: ServeConfig = {"host": str(cf.backend.host), "port": cf.backend.port}
    return app_path, uvi_cf


@click.group()
def web(): ...


@web.command(name="serve")
@click.argument("app_name", default="gradeflow")
@click.option("-w", "--workers", type=click.IntRange(min=1), default=1)
@di.inject
def serve(
    app_name: str,
    workers: int,
    boot_cf: BootConfiguration = di.Provide["_boot_config"],
    logging_cf: LoggingSettings = di.Provide["config.logging", di.as_(LoggingSettings)],  # noqa: B008
    web_cf: WebSettings = di.Provide["config.web", di.as_(WebSettings)],  # noqa: B008
):
    """Start a web app backend."""
    app_path, uvi_cf = _get_app_config(app_name, web_cf)

    os.environ[BootVariable] = boot_cf.model_dump_json()
    uvicorn.run(app_path, factory=True, workers=workers, log_config=logging_cf.model_dump(), **uvi_cf)


@web.command(name="develop")
@click.argument("app_name", default="gradeflow")
@di.inject
def develop(
    app_name: str,
    boot_cf: BootConfiguration = di.Provide["_boot_config"],
    logging_cf: LoggingSettings = di.Provide["config.logging", di.as_(LoggingSettings)],  # noqa: B008
    web_cf: WebSettings = di.Provide["config.web", di.as_(WebSettings)],  # noqa: B008
):
    """Start a web app backend with live-reload."""
    app_path, uvi_cf = _get_app_config(app_name, web_cf)

    os.environ[BootVariable] = boot_cf.model_dump_json()
    uvicorn.run(app_path, factory=True, reload=True, log_config=logging_cf.model_dump(), **uvi_cf)
