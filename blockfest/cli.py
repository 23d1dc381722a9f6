# blockfest/cli.py
import json
import logging
import sys

import click
from dotenv import load_dotenv

from .config import Settings
from .errors import BlockFestError, LedgerTimeout
from .models import VIPStatus
from .services.auth_service import AuthService
from .services.file_source import LocalFileSource
from .services.ledger import LedgerReader, LedgerWriter
from .services.marketplace import MarketplaceClient
from .services.metadata import MetadataService
from .services.vip_registry import VIPRegistry


def _settings(ctx) -> Settings:
    return ctx.obj["settings"]


def _open_registry(settings: Settings, path) -> VIPRegistry:
    registry = VIPRegistry(LocalFileSource(path or settings.insider_list_path), bootstrap=False)
    registry.load()
    return registry


def _marketplace(settings: Settings, token=None, need_writer=False) -> MarketplaceClient:
    reader = LedgerReader.from_settings(settings)
    writer = None
    if need_writer:
        writer = LedgerWriter(reader, settings.wallet_private_key, settings.tx_confirmation_timeout)
    return MarketplaceClient(settings.api_url, token, reader, writer,
                             metadata=MetadataService(settings.ipfs_gateway),
                             timeout=settings.ledger_timeout)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx, verbose):
    """BlockFest ticketing backend tools."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = Settings.from_env()


@main.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=None, type=int, help="Port (defaults to $PORT or 5001)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.pass_context
def serve(ctx, host, port, reload):
    """Run the HTTP API."""
    import uvicorn
    uvicorn.run("blockfest.main:app", host=host, port=port or _settings(ctx).port,
                reload=reload, log_level="info")


@main.command("set-admin")
@click.argument("uid")
@click.pass_context
def set_admin(ctx, uid):
    """Grant the admin custom claim to a Firebase user."""
    service = AuthService(_settings(ctx).firebase_service_account_path)
    try:
        service.set_admin_claim(uid)
    except BlockFestError as e:
        click.echo(f"Failed to set admin claim: {e}", err=True)
        sys.exit(1)
    click.echo(f"✅ {uid} is now an admin")


@main.command("vip-list")
@click.option("--file", "path", type=click.Path(), default=None, help="Insider list CSV (defaults to $INSIDER_LIST_PATH)")
@click.option("--name", default="", help="Filter by partial name")
@click.option("--roll", default="", help="Filter by partial roll number")
@click.pass_context
def vip_list(ctx, path, name, roll):
    """Load the insider list and report entries and skipped rows."""
    try:
        registry = _open_registry(_settings(ctx), path)
    except BlockFestError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    records = registry.search(name, roll) if (name or roll) else registry.records()
    report = registry.last_report
    click.echo(json.dumps({
        "count": len(records),
        "entries": [r.to_dict() for r in records],
        "skipped": [row.to_dict() for row in report.skipped],
    }, indent=2))


@main.command("vip-lookup")
@click.argument("name")
@click.argument("roll_number")
@click.argument("wallet_address")
@click.option("--file", "path", type=click.Path(), default=None, help="Insider list CSV")
@click.pass_context
def vip_lookup(ctx, name, roll_number, wallet_address, path):
    """Check a (name, roll, wallet) triple against a local insider list."""
    try:
        wallet = _open_registry(_settings(ctx), path).lookup(name, roll_number, wallet_address)
    except BlockFestError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    if wallet is None:
        click.echo("Not on the VIP list")
        sys.exit(2)
    click.echo(f"VIP: {wallet}")


@main.command()
@click.pass_context
def event(ctx):
    """Show event state read from the ledger."""
    try:
        details = LedgerReader.from_settings(_settings(ctx)).get_event_details()
    except BlockFestError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo(json.dumps({
        "isActive": details.is_active,
        "maxTickets": details.max_tickets,
        "currentTickets": details.current_tickets,
        "ticketPriceInsider": details.prices.insider,
        "ticketPriceOutsider": details.prices.outsider,
    }, indent=2))


@main.command()
@click.option("--vip", is_flag=True, help="Show insider prices")
@click.option("--no-metadata", is_flag=True, help="Skip fetching token metadata")
@click.pass_context
def tickets(ctx, vip, no_metadata):
    """List issued tickets with the price for your tier."""
    try:
        listings = _marketplace(_settings(ctx)).list_available_tickets(vip, with_metadata=not no_metadata)
    except BlockFestError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    for listing in listings:
        title = (listing.metadata or {}).get("name", "Unknown Ticket")
        click.echo(f"#{listing.ticket_id}  {title}  {listing.price} ETH  {listing.token_uri or ''}")


@main.command()
@click.argument("ticket_id", type=int)
@click.option("--name", default=None, help="Name for VIP verification")
@click.option("--roll", "roll_number", default=None, help="Roll number for VIP verification")
@click.option("--token", envvar="FIREBASE_ID_TOKEN", default=None, help="Firebase ID token ($FIREBASE_ID_TOKEN)")
@click.option("--price", default=None, help="Price you were quoted, in ETH")
@click.pass_context
def buy(ctx, ticket_id, name, roll_number, token, price):
    """Buy a ticket from the wallet in $WALLET_PRIVATE_KEY."""
    try:
        client = _marketplace(_settings(ctx), token, need_writer=True)
        vip = VIPStatus(is_vip=False)
        if name and roll_number:
            vip = client.check_vip(name, roll_number, client.writer.address)
            click.echo("VIP verified" if vip.is_vip else f"Not VIP: {vip.message}")
        result = client.buy_ticket(ticket_id, vip, quoted_price=price)
    except LedgerTimeout as e:
        click.echo(f"⚠️ {e}. Check the transaction before trying again.", err=True)
        sys.exit(3)
    except BlockFestError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)
    click.echo(f"✅ Ticket purchased: {result.tx_hash} (block {result.block_number})")


@main.command()
@click.argument("ticket_id", type=int)
@click.pass_context
def resell(ctx, ticket_id):
    """Sell a ticket back to the event."""
    try:
        result = _marketplace(_settings(ctx), need_writer=True).resell_ticket(ticket_id)
    except LedgerTimeout as e:
        click.echo(f"⚠️ {e}. Check the transaction before trying again.", err=True)
        sys.exit(3)
    except BlockFestError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)
    click.echo(f"✅ Resale submitted: {result.tx_hash}")


if __name__ == "__main__":
    main()
