"""CLI entry point for rest-contract."""

import asyncio
import logging
from pathlib import Path

import click
import yaml
from pydantic_core import to_json

from rest_contract.config import ClientSettings
from rest_contract.contract.base import ContractSurface
from rest_contract.contract.detect import detect_format
from rest_contract.contract.loader import load_contract
from rest_contract.contract.openapi import import_openapi
from rest_contract.contract.validator import validate_contract
from rest_contract.errors import ApiError, RestContractError
from rest_contract.request.builder import DescriptorBuilder
from rest_contract.requester import Requester
from rest_contract.rest_client import RestClient
from rest_contract.transport import HttpxTransport

FORMATS = ["auto", "contract", "openapi"]


def _load_surface(file_path: Path, fmt: str) -> ContractSurface:
    """Load a contract document based on format."""
    if fmt == "auto":
        fmt = detect_format(file_path)

    if fmt == "contract":
        return load_contract(file_path)
    elif fmt == "openapi":
        return import_openapi(file_path)
    raise click.ClickException(f"Cannot tell whether {file_path} is a contract or an OpenAPI document")


def _parse_pairs(pairs: tuple[str, ...]) -> dict:
    """Parse name=value options; values are read as YAML scalars, lists or maps."""
    result = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise click.BadParameter(f"expected name=value, got '{pair}'")
        result[name.strip()] = yaml.safe_load(value) if value else None
    return result


def _check(surface: ContractSurface) -> None:
    report = validate_contract(surface)
    if not report.is_usable:
        for diagnostic in report.errors:
            click.echo(str(diagnostic), err=True)
        raise click.ClickException(f"Contract '{surface.name}' has {len(report.errors)} error(s)")


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: REST_CONTRACT_LOG_LEVEL or WARNING).")
@click.pass_context
def main(ctx: click.Context, log_level: str | None):
    """rest-contract: validate HTTP API contracts and call them."""
    settings = ClientSettings.from_env()
    if log_level:
        settings = settings.model_copy(update={"log_level": log_level.upper()})
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = settings


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("--format", "fmt", default="auto", type=click.Choice(FORMATS), help="Document format.")
def validate(doc_path: Path, fmt: str):
    """Validate a contract and list every diagnostic."""
    surface = _load_surface(doc_path, fmt)
    report = validate_contract(surface)
    for diagnostic in report.diagnostics:
        click.echo(str(diagnostic))

    if not report.is_usable:
        click.echo(f"{surface.name}: {len(report.errors)} error(s)")
        raise SystemExit(1)
    click.echo(f"{surface.name}: OK ({len(surface.operations)} operations)")


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.argument("operation")
@click.option("-a", "--arg", "args", multiple=True, help="Argument as name=value.")
@click.option("-P", "--prop", "props", multiple=True, help="Property value as name=value.")
@click.option("--base-url", default=None, help="Base address (default: REST_CONTRACT_BASE_URL).")
@click.option("--format", "fmt", default="auto", type=click.Choice(FORMATS), help="Document format.")
@click.pass_obj
def describe(settings: ClientSettings, doc_path: Path, operation: str, args, props, base_url: str | None, fmt: str):
    """Show the request an operation would send, without sending it."""
    surface = _load_surface(doc_path, fmt)
    _check(surface)

    try:
        descriptor = DescriptorBuilder(surface).build(operation, _parse_pairs(args), _parse_pairs(props))
        requester = Requester(HttpxTransport(base_address=base_url or settings.base_url))
        try:
            request = requester.compose(descriptor)
            body = asyncio.run(request.content.aread()) if request.content is not None else None
        finally:
            asyncio.run(requester.aclose())
    except (RestContractError, TypeError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"{request.method} {request.uri}")
    for name, value in request.headers:
        click.echo(f"{name}: {value}")
    if request.content is not None:
        for name, value in request.content.headers:
            click.echo(f"{name}: {value}")
        click.echo("")
        click.echo(body.decode("utf-8", errors="replace"))


async def _call(settings: ClientSettings, surface: ContractSurface, operation: str, arguments: dict, properties: dict):
    async with RestClient(settings.base_url, timeout=settings.timeout) as rest:
        client = rest.for_contract(surface)
        for name, value in properties.items():
            setattr(client, name, value)
        return await getattr(client, operation)(**arguments)


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.argument("operation")
@click.option("-a", "--arg", "args", multiple=True, help="Argument as name=value.")
@click.option("-P", "--prop", "props", multiple=True, help="Property value as name=value.")
@click.option("--base-url", default=None, help="Base address (default: REST_CONTRACT_BASE_URL).")
@click.option("--format", "fmt", default="auto", type=click.Choice(FORMATS), help="Document format.")
@click.pass_obj
def call(settings: ClientSettings, doc_path: Path, operation: str, args, props, base_url: str | None, fmt: str):
    """Send an operation and print the result."""
    surface = _load_surface(doc_path, fmt)
    _check(surface)
    if surface.get_operation(operation) is None:
        raise click.ClickException(f"'{surface.name}' has no operation '{operation}'")
    if base_url:
        settings = settings.model_copy(update={"base_url": base_url})

    try:
        result = asyncio.run(_call(settings, surface, operation, _parse_pairs(args), _parse_pairs(props)))
    except ApiError as e:
        click.echo(str(e), err=True)
        if e.raw_body:
            click.echo(e.raw_body, err=True)
        raise SystemExit(1)
    except (RestContractError, TypeError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if result is None:
        return
    if isinstance(result, str):
        click.echo(result)
    else:
        click.echo(to_json(result, indent=2, fallback=str).decode("utf-8"))
