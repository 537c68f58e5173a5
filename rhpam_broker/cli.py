from __future__ import annotations

import logging

import typer
import uvicorn
import yaml
from fastapi.encoders import jsonable_encoder

from rhpam_broker.deps import get_broker
from rhpam_broker.logging_config import configure_logging
from rhpam_broker.proc import AdapterCommandError
from rhpam_broker.services.errors import BrokerException

configure_logging()
logger = logging.getLogger(__name__)
app = typer.Typer(help="RHPAM managed service broker CLI", pretty_exceptions_show_locals=False)


def _exit_for_domain_error(exc: Exception) -> None:
    logger.warning("CLI command failed with domain error: %s", exc)
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


def _echo_yaml_entity(entity: object) -> None:
    encoded = jsonable_encoder(entity)
    typer.echo(yaml.safe_dump(encoded, sort_keys=False), nl=False)


@app.command("catalog")
def catalog() -> None:
    _echo_yaml_entity({"services": get_broker().get_catalog()})


@app.command("provision")
def provision(
    instance_id: str,
    identity: str = typer.Option(..., "--identity", help="Username granted view/edit access to the tenant."),
) -> None:
    try:
        result = get_broker().provision(instance_id, identity)
    except (BrokerException, AdapterCommandError) as e:
        _exit_for_domain_error(e)
    _echo_yaml_entity({"operation": result.operation, "dashboard_url": result.dashboard_url})


@app.command("deprovision")
def deprovision(instance_id: str) -> None:
    try:
        operation = get_broker().deprovision(instance_id)
    except (BrokerException, AdapterCommandError) as e:
        _exit_for_domain_error(e)
    _echo_yaml_entity({"operation": operation})


@app.command("last-operation")
def last_operation(
    instance_id: str,
    operation: str = typer.Option(..., "--operation", help="Operation token returned by provision/deprovision."),
) -> None:
    try:
        result = get_broker().last_operation(instance_id, operation)
    except (BrokerException, AdapterCommandError) as e:
        _exit_for_domain_error(e)
    _echo_yaml_entity({"state": result.state.value, "description": result.description})


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(8080, "--port"),
) -> None:
    uvicorn.run("rhpam_broker.main:app", host=host, port=port, log_level="info")


if __name__ == "__main__":
    app()
