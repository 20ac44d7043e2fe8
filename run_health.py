#!/usr/bin/env python3
"""
run_health.py - CLI entrypoint for endpoint health checks.

Usage:
    python run_health.py check --chain osmosis
    python run_health.py check --chain evmos --kind evm --race
    python run_health.py status --chain cosmoshub
    python run_health.py denom --chain osmosis --hash ibc/27394FB0...
    python run_health.py report --chain osmosis
    python run_health.py sync-registry
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import click

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from chains.catalog import ChainRegistry
from chains.repo import RegistryRepo
from chains.status import fetch_network_status, query_ibc_denom
from config import HealthSettings, load_chains
from core.constants import EndpointKind
from core.exceptions import ChainProbeError, ProbeError
from core.logging import get_logger, set_global_context, setup_logging
from core.models import Endpoint, address_of
from health.service import HealthService

logger = get_logger("chainprobe.cli")

VERSION = "0.1.0"

KIND_CHOICES = {
    "rpc": EndpointKind.RPC,
    "rest": EndpointKind.REST,
    "grpc": EndpointKind.GRPC,
    "evm": EndpointKind.EVM,
}


def build_registry(
    settings: HealthSettings,
    catalog: Optional[str],
    testnet: bool,
) -> ChainRegistry:
    """YAML catalog if given, else the registry checkout, else the bundled catalog."""
    if catalog:
        return ChainRegistry.from_yaml(Path(catalog))
    repo_dir = Path(settings.repo_dir)
    if repo_dir.is_dir():
        return ChainRegistry.from_directory(repo_dir, testnets=testnet)
    logger.info(
        "Registry checkout not found, using bundled catalog",
        extra={"context": {"repo_dir": str(repo_dir)}},
    )
    return ChainRegistry.from_mapping(load_chains())


def run_with_service(
    ctx: click.Context,
    action: Callable[[HealthService], Awaitable[Any]],
) -> Any:
    settings: HealthSettings = ctx.obj["settings"]
    registry = build_registry(settings, ctx.obj["catalog"], ctx.obj["testnet"])

    async def runner() -> Any:
        async with HealthService(settings, registry) as service:
            return await action(service)

    try:
        return asyncio.run(runner())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)
    except ChainProbeError as e:
        exit_with_error(e)


def exit_with_error(e: ChainProbeError) -> None:
    """Typed errors exit with status 2."""
    logger.error(str(e), extra={"context": {"error_code": e.code.value, **e.details}})
    click.echo(f"Error: {e}", err=True)
    sys.exit(2)


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.option(
    "--log-level",
    "-l",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level (defaults to LOG_LEVEL or INFO)",
)
@click.option("--json-logs/--no-json-logs", default=False, help="Use JSON log format")
@click.option("--catalog", type=click.Path(exists=True, dir_okay=False), help="Static YAML catalog")
@click.option("--testnet", is_flag=True, help="Read testnets from the registry checkout")
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: Optional[str],
    json_logs: bool,
    catalog: Optional[str],
    testnet: bool,
) -> None:
    """Endpoint health checks for chain-registry chains."""
    try:
        settings = HealthSettings.from_env()
    except ChainProbeError as e:
        exit_with_error(e)

    setup_logging(level=log_level or settings.log_level, json_output=json_logs)
    set_global_context(service="chainprobe", version=VERSION)

    ctx.ensure_object(dict)
    ctx.obj.update(settings=settings, catalog=catalog, testnet=testnet)


@cli.command()
@click.option("--chain", "-c", required=True, help="Chain name, e.g. osmosis")
@click.option(
    "--kind",
    "-k",
    default="all",
    type=click.Choice(["all", *KIND_CHOICES]),
    help="Endpoint kind; 'all' returns the cached rpc/rest/grpc entry",
)
@click.option("--race", is_flag=True, help="Take the first healthy response instead of the first listed")
@click.pass_context
def check(ctx: click.Context, chain: str, kind: str, race: bool) -> None:
    """Select a live endpoint."""

    async def action(service: HealthService) -> dict:
        if kind == "all":
            entry = await service.get_or_select(chain)
            return entry.to_dict()
        endpoint = await service.select(chain, KIND_CHOICES[kind], race=race)
        return {"chain": chain, "kind": kind, "address": address_of(endpoint)}

    echo_json(run_with_service(ctx, action))


@cli.command()
@click.option("--chain", "-c", required=True, help="Chain name")
@click.pass_context
def status(ctx: click.Context, chain: str) -> None:
    """Show sync info from a live RPC endpoint."""

    async def action(service: HealthService) -> dict:
        rpc = await service.select(chain, EndpointKind.RPC)
        if not isinstance(rpc, Endpoint):
            return {"chain": chain, "rpc": address_of(rpc), "status": None}
        try:
            network = await fetch_network_status(service.client, rpc.address)
        except ProbeError as e:
            return {"chain": chain, "rpc": rpc.address, "status": None, "error": str(e)}
        return {"chain": chain, "rpc": rpc.address, "status": network.to_dict()}

    echo_json(run_with_service(ctx, action))


@cli.command()
@click.option("--chain", "-c", required=True, help="Chain name")
@click.option("--hash", "ibc_hash", required=True, help="IBC denom, with or without ibc/")
@click.pass_context
def denom(ctx: click.Context, chain: str, ibc_hash: str) -> None:
    """Resolve an IBC denom trace through a live REST endpoint."""

    async def action(service: HealthService) -> dict:
        rest = await service.select(chain, EndpointKind.REST)
        if not isinstance(rest, Endpoint):
            return {"chain": chain, "rest": address_of(rest), "trace": None}
        try:
            trace = await query_ibc_denom(service.client, rest.address, ibc_hash)
        except ProbeError as e:
            return {"chain": chain, "rest": rest.address, "trace": None, "error": str(e)}
        return {
            "chain": chain,
            "rest": rest.address,
            "trace": {"path": trace.path, "base_denom": trace.base_denom},
        }

    echo_json(run_with_service(ctx, action))


@cli.command()
@click.option("--chain", "-c", required=True, help="Chain name")
@click.pass_context
def report(ctx: click.Context, chain: str) -> None:
    """Probe every declared endpoint of a chain and print a report."""

    async def action(service: HealthService) -> dict:
        await service.get_or_select(chain)
        probes = []
        for kind in (EndpointKind.RPC, EndpointKind.REST, EndpointKind.EVM):
            probes.extend(await service.selector.probe_all(chain, kind))
        return service.report(probes=probes)

    echo_json(run_with_service(ctx, action))


@cli.command("sync-registry")
@click.option("--force", is_flag=True, help="Pull even if the checkout is fresh")
@click.pass_context
def sync_registry(ctx: click.Context, force: bool) -> None:
    """Clone or update the chain-registry checkout."""
    settings: HealthSettings = ctx.obj["settings"]
    repo = RegistryRepo(
        Path(settings.repo_dir),
        repo_url=settings.repo_url,
        stale_hours=settings.stale_hours,
    )
    try:
        outcome = repo.sync(force=force)
    except ChainProbeError as e:
        exit_with_error(e)
    click.echo(f"Registry {outcome}: {settings.repo_dir}")


if __name__ == "__main__":
    cli()
