"""Exoscale store CLI implementation."""

import asyncio
import logging
from typing import List, Optional

import click

from exoscale_store.shared import debug
from exoscale_store.shared.config import load_switch_config
from exoscale_store.shared.stores import (
    Store,
    StoreError,
    StoreKind,
    ensure_default_stores,
)


def _load_stores(config_path: Optional[str], store_id: Optional[str]) -> List[Store]:
    """Build every Exoscale store of the SwitchConfig, optionally filtered by id."""

    switch_config = load_switch_config(config_path)
    entries = switch_config.stores_of_kind(StoreKind.EXOSCALE.value)
    if store_id is not None:
        entries = [entry for entry in entries if entry.id == store_id]
    if not entries:
        raise click.ClickException("No Exoscale kubeconfig store configured.")

    registry = ensure_default_stores()
    return [registry.create_store(entry) for entry in entries]


def _display_path(store: Store, path: str) -> str:
    prefix = store.get_context_prefix(path)
    return f"{prefix}/{path}" if prefix else path


async def _search(store: Store) -> List[str]:
    paths = []
    async for result in store.discover():
        if result.error is not None:
            raise result.error
        paths.append(result.kubeconfig_path)
    return paths


async def _fetch_kubeconfig(store: Store, path: str) -> bytes:
    # Kubeconfigs are only served for paths a search has reported.
    await _search(store)
    return await store.get_kubeconfig_for_path(path)


@click.group(help="Exoscale Store - Discover SKS clusters and fetch their kubeconfigs.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="SwitchConfig file (defaults to $KUBESWITCHCONFIG or ~/.kube/switch-config.yaml)",
)
@click.option("--store-id", help="Only use the Exoscale store with this id.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    store_id: Optional[str],
    verbose: bool,
) -> None:
    """Root command for the Exoscale store CLI."""
    debug.configure_root(logging.WARNING)
    if verbose:
        debug.enable()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["store_id"] = store_id


def _stores(ctx: click.Context) -> List[Store]:
    try:
        return _load_stores(ctx.obj["config_path"], ctx.obj["store_id"])
    except StoreError as e:
        raise click.ClickException(str(e))


@cli.command(help="List the SKS clusters of every zone.")
@click.pass_context
def search(ctx: click.Context) -> None:
    """Run one discovery pass and print each cluster path."""
    for store in _stores(ctx):
        try:
            paths = asyncio.run(_search(store))
        except StoreError as e:
            raise click.ClickException(f"{store.get_id()}: {e}")
        for path in paths:
            click.echo(_display_path(store, path))


@cli.command(help="Print the kubeconfig of a cluster given as zoneName/clusterName.")
@click.argument("path")
@click.pass_context
def kubeconfig(ctx: click.Context, path: str) -> None:
    """Fetch a fresh kubeconfig for one cluster."""
    stores = _stores(ctx)
    if len(stores) > 1:
        ids = ", ".join(store.get_id() for store in stores)
        raise click.ClickException(
            f"Several Exoscale stores are configured ({ids}); choose one with --store-id."
        )
    store = stores[0]
    try:
        data = asyncio.run(_fetch_kubeconfig(store, path))
    except StoreError as e:
        raise click.ClickException(str(e))
    click.echo(data.decode("utf-8"), nl=False)


@cli.command("id", help="Show the id and context prefix of the configured stores.")
@click.pass_context
def show_id(ctx: click.Context) -> None:
    """Display store identifiers."""
    for store in _stores(ctx):
        prefix = store.get_context_prefix("") or "(none)"
        click.echo(f"{store.get_id()}  prefix: {prefix}")


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
