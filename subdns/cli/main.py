"""subdns — Click-based CLI entry point."""

import logging
import sys

import click

from subdns.config import DEFAULT_PRIORITY, DEFAULT_TTL, DEFAULT_WEIGHT, LOG_FILE
from subdns.core import state_manager
from subdns.core.bunny_client import BunnyAPIError, BunnyClient, sanitize_api_key
from subdns.core.domains import (
    add_domain,
    get_domain_or_raise,
    invalidate_zone,
    remove_domain,
    update_domain,
)
from subdns.core.errors import SubdomainError
from subdns.core.models import Allocation, Node, ProtocolMapping, Workload
from subdns.core.security import clear_api_key, has_api_key, store_api_key
from subdns.core.subdomain_service import SubdomainService

logger = logging.getLogger("subdns")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    handlers = [logging.StreamHandler(sys.stderr)]
    # Also log to file if the logs directory exists
    if LOG_FILE.parent.exists():
        handlers.append(logging.FileHandler(str(LOG_FILE), encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def _fail(exc: SubdomainError) -> None:
    click.echo(f"Error [{exc.code}]: {exc}", err=True)
    raise SystemExit(1)


def _service() -> SubdomainService:
    return SubdomainService()


def _parse_mapping(value: str) -> ProtocolMapping:
    """Parse ``recipe[:service[:transport[:priority[:weight[:ttl]]]]]``."""
    parts = value.split(":")
    if not parts[0]:
        raise click.BadParameter(f"Mapping '{value}' has no recipe id.")
    if len(parts) > 6:
        raise click.BadParameter(f"Mapping '{value}' has too many fields.")
    defaults = ["", "", "tcp", str(DEFAULT_PRIORITY), str(DEFAULT_WEIGHT), str(DEFAULT_TTL)]
    fields = parts + defaults[len(parts):]
    try:
        return ProtocolMapping(
            recipe_id=fields[0],
            service=fields[1] or None,
            transport=(fields[2] or "tcp").lower(),
            priority=int(fields[3]),
            weight=int(fields[4]),
            ttl=int(fields[5]),
        )
    except ValueError:
        raise click.BadParameter(f"Mapping '{value}': priority, weight and ttl must be integers.")


def _mapping_option(values: tuple[str, ...]) -> list[ProtocolMapping] | None:
    return [_parse_mapping(v) for v in values] if values else None


# ======================================================================
# CLI group
# ======================================================================

@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
def cli(verbose: bool) -> None:
    """subdns — Per-workload DNS subdomains on Bunny DNS."""
    _setup_logging(verbose)


@cli.command()
def init() -> None:
    """Initialise the subdns state directory (~/.subdns/)."""
    path = state_manager.init_state_dir()
    click.echo(f"Initialised subdns state in {path}")


# ======================================================================
# Credentials & settings
# ======================================================================

@cli.command("login")
def login_cmd() -> None:
    """Store the Bunny DNS access key in the OS keyring."""
    raw_key = click.prompt("Bunny DNS access key", hide_input=True)
    try:
        api_key = sanitize_api_key(raw_key)
    except ValueError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)

    click.echo("Verifying access key with Bunny DNS…")
    try:
        zones = BunnyClient(api_key).list_zones()
    except BunnyAPIError as exc:
        click.echo(f"Access key verification failed: {exc}", err=True)
        raise SystemExit(1)
    store_api_key(api_key)
    click.echo(f"Access key stored ({len(zones)} zone(s) visible).")


@cli.command("logout")
def logout_cmd() -> None:
    """Remove the stored access key."""
    clear_api_key()
    click.echo("Access key removed.")


@cli.command()
@click.option("--max-per-workload", type=int, default=None,
              help="Maximum subdomains a single workload may hold (>= 1).")
def settings(max_per_workload: int | None) -> None:
    """Show or update provider settings."""
    state_manager.init_state_dir()
    if max_per_workload is not None:
        if max_per_workload < 1:
            click.echo("Max subdomains per workload must be at least 1.", err=True)
            raise SystemExit(1)
        state_manager.set_setting("max_subdomains_per_workload", max_per_workload)
    click.echo(f"Access key set:            {'yes' if has_api_key() else 'no'}")
    click.echo(f"Max subdomains / workload: {state_manager.get_max_per_workload()}")


# ======================================================================
# domain
# ======================================================================

@cli.group()
def domain() -> None:
    """Manage parent domains and their recipe mappings."""


@domain.command("add")
@click.argument("hostname")
@click.option("--map", "maps", multiple=True, required=True,
              help="recipe[:service[:transport[:priority[:weight[:ttl]]]]]  (repeatable)")
@click.option("--inactive", is_flag=True, help="Register the domain disabled.")
def domain_add(hostname: str, maps: tuple[str, ...], inactive: bool) -> None:
    """Register HOSTNAME as a parent domain."""
    state_manager.init_state_dir()
    try:
        d = add_domain(hostname, _mapping_option(maps) or [], is_active=not inactive)
    except SubdomainError as exc:
        _fail(exc)
    click.echo(f"Added {d.hostname}  (id={d.id})")


@domain.command("update")
@click.argument("domain_ref")
@click.option("--hostname", default=None)
@click.option("--active/--inactive", default=None)
@click.option("--map", "maps", multiple=True, help="Replace all mappings (repeatable).")
def domain_update(domain_ref: str, hostname: str | None, active: bool | None, maps: tuple[str, ...]) -> None:
    """Update a domain's hostname, status or mappings."""
    try:
        d = get_domain_or_raise(domain_ref)
        d = update_domain(d.id, hostname=hostname, is_active=active, mappings=_mapping_option(maps))
    except SubdomainError as exc:
        _fail(exc)
    click.echo(f"Updated {d.hostname}")


@domain.command("remove")
@click.argument("domain_ref")
def domain_remove(domain_ref: str) -> None:
    """Remove a domain that has no subdomains left."""
    try:
        d = get_domain_or_raise(domain_ref)
        remove_domain(d.id)
    except SubdomainError as exc:
        _fail(exc)
    click.echo(f"Removed {d.hostname}")


@domain.command("refresh-zone")
@click.argument("domain_ref")
def domain_refresh_zone(domain_ref: str) -> None:
    """Forget the cached zone id of a domain."""
    try:
        d = invalidate_zone(get_domain_or_raise(domain_ref).id)
    except SubdomainError as exc:
        _fail(exc)
    click.echo(f"Zone id cleared for {d.hostname}")


@domain.command("list")
def domain_list() -> None:
    """List registered domains."""
    domains = state_manager.list_domains()
    if not domains:
        click.echo("No domains registered.")
        return
    for d in domains:
        status = "active" if d.is_active else "inactive"
        click.echo(f"  {d.hostname:<30} {status:<9} zone={d.zone_id or '-'}  id={d.id}")
        for m in d.mappings:
            shape = f"SRV {m.service}._{m.transport}" if m.service else "CNAME"
            click.echo(f"      recipe {m.recipe_id:<10} {shape}  ttl={m.ttl}")


# ======================================================================
# inventory
# ======================================================================

@cli.group()
def inventory() -> None:
    """Record nodes, allocations and workloads."""


@inventory.command("node")
@click.argument("node_id")
@click.option("--public-ip", default=None, help="Public IPv4 of the node.")
def inventory_node(node_id: str, public_ip: str | None) -> None:
    state_manager.init_state_dir()
    state_manager.save_node(Node(id=node_id, public_ipv4=public_ip))
    click.echo(f"Saved node {node_id}")


@inventory.command("allocation")
@click.argument("allocation_id")
@click.option("--ip", required=True)
@click.option("--port", type=int, default=0)
@click.option("--alias", default=None, help="Alias address or hostname.")
@click.option("--node", "node_id", default=None)
def inventory_allocation(allocation_id: str, ip: str, port: int, alias: str | None, node_id: str | None) -> None:
    state_manager.init_state_dir()
    state_manager.save_allocation(
        Allocation(id=allocation_id, ip=ip, port=port, ip_alias=alias, node_id=node_id)
    )
    click.echo(f"Saved allocation {allocation_id}")


@inventory.command("workload")
@click.argument("workload_id")
@click.option("--recipe", required=True)
@click.option("--allocation", "allocation_id", required=True)
def inventory_workload(workload_id: str, recipe: str, allocation_id: str) -> None:
    state_manager.init_state_dir()
    state_manager.save_workload(Workload(id=workload_id, recipe_id=recipe, allocation_id=allocation_id))
    click.echo(f"Saved workload {workload_id}")


# ======================================================================
# subdomains
# ======================================================================

@cli.command()
@click.argument("workload_id")
def available(workload_id: str) -> None:
    """List domains a workload may create subdomains under."""
    try:
        offered = _service().available_domains(workload_id)
    except SubdomainError as exc:
        _fail(exc)
    used = state_manager.count_by_workload(workload_id)
    click.echo(f"{used}/{state_manager.get_max_per_workload()} subdomain(s) in use")
    for d, m in offered:
        shape = f"SRV {m.service}._{m.transport}" if m.service else "CNAME"
        click.echo(f"  {d.hostname:<30} {shape}")


@cli.command()
@click.argument("workload_id")
@click.argument("domain_ref")
@click.argument("label")
def create(workload_id: str, domain_ref: str, label: str) -> None:
    """Create LABEL.DOMAIN for a workload."""
    try:
        entry = _service().create(workload_id, domain_ref, label)
    except SubdomainError as exc:
        _fail(exc)
    port = f":{entry.port}" if entry.port else ""
    click.echo(f"Created {entry.record_type} {entry.label}{port}  (id={entry.id})")


@cli.command()
@click.argument("subdomain_id")
@click.option("--workload", "workload_id", default=None, help="Only delete if owned by this workload.")
def delete(subdomain_id: str, workload_id: str | None) -> None:
    """Delete a subdomain and its DNS records."""
    try:
        result = _service().delete(subdomain_id, workload_id)
    except SubdomainError as exc:
        _fail(exc)
    for item in result.deleted:
        click.echo(f"  - {item}")
    if result.skipped_provider:
        click.echo("Provider cleanup skipped (not configured or zone unresolved).", err=True)
    for item in result.errors:
        click.echo(f"  ! {item}", err=True)
    click.echo("Subdomain deleted.")


@cli.command("list")
@click.option("--workload", "workload_id", default=None)
@click.option("--domain", "domain_ref", default=None)
def list_cmd(workload_id: str | None, domain_ref: str | None) -> None:
    """List provisioned subdomains."""
    domain_id = None
    if domain_ref:
        try:
            domain_id = get_domain_or_raise(domain_ref).id
        except SubdomainError as exc:
            _fail(exc)
    entries = state_manager.list_subdomains(workload_id=workload_id, domain_id=domain_id)
    if not entries:
        click.echo("No subdomains.")
        return
    hostnames = {d.id: d.hostname for d in state_manager.list_domains()}
    for s in entries:
        host = f"{s.label}.{hostnames.get(s.domain_id, '?')}"
        port = str(s.port) if s.port else "-"
        click.echo(f"  {host:<40} {s.record_type:<6} port={port:<6} workload={s.workload_id}  id={s.id}")


@cli.command()
@click.argument("workload_id")
def cleanup(workload_id: str) -> None:
    """Remove every subdomain of a workload (best effort)."""
    count = state_manager.count_by_workload(workload_id)
    _service().cleanup_workload(workload_id)
    click.echo(f"Cleaned up {count} subdomain(s) for {workload_id}.")


if __name__ == "__main__":
    cli()
