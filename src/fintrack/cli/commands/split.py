"""Split and unsplit commands."""

from decimal import Decimal

import click
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.category import TransactionTypeService
from fintrack.domain.entities import SplitItem
from fintrack.domain.split import SplitService
from fintrack.utils.amount_parser import parse_amount


def parse_split_item(item: str, type_service: TransactionTypeService) -> SplitItem:
    """Parse ``AMOUNT[:TYPE_CODE[:CATEGORY_ID]]`` into a split item.

    Raises:
        ValueError: If a part cannot be parsed
        NotFoundError: If the type code doesn't exist
    """
    parts = item.split(":")
    if len(parts) > 3:
        raise ValueError(f"Invalid split item '{item}'; expected AMOUNT[:TYPE[:CATEGORY_ID]]")

    amount: Decimal = parse_amount(parts[0])
    type_id = None
    if len(parts) > 1 and parts[1]:
        type_id = type_service.get_by_code(parts[1].upper()).id
    category_id = None
    if len(parts) > 2 and parts[2]:
        if not parts[2].isdigit():
            raise ValueError(f"Invalid category ID '{parts[2]}'")
        category_id = int(parts[2])
    return SplitItem(amount=amount, transaction_type_id=type_id, category_id=category_id)


@click.group()
def split_group():
    """Split a transaction into line items."""
    pass


@split_group.command("apply")
@click.argument("raw_transaction_id")
@click.option(
    "--item",
    "items",
    multiple=True,
    required=True,
    help="Line item as AMOUNT[:TYPE_CODE[:CATEGORY_ID]]; repeat for each item",
)
@click.pass_context
def apply_split(ctx, raw_transaction_id: str, items: tuple[str, ...]):
    """Split a raw transaction.

    Item amounts must add up to the transaction amount exactly.

    Examples:
        fintrack split apply TXN-1 --item 600000:EXP:3 --item 400000:EXP:5
    """
    db = ctx.obj["db"]
    service = SplitService(db)
    type_service = TransactionTypeService(db)

    try:
        split_items = [parse_split_item(item, type_service) for item in items]
        rows = service.split_transaction(raw_transaction_id, split_items)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Split '{raw_transaction_id}' into {len(rows)} items:")
    for row in rows:
        click.echo(f"  #{row.split_sequence} ID: {row.id} | {row.amount:,.2f}")


@split_group.command("undo")
@click.argument("raw_transaction_id")
@click.pass_context
def undo_split(ctx, raw_transaction_id: str):
    """Collapse a split transaction back into one row."""
    db = ctx.obj["db"]
    service = SplitService(db)

    try:
        row = service.unsplit_transaction(raw_transaction_id)
        click.echo(f"Unsplit '{raw_transaction_id}' (main ID: {row.id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@split_group.command("show")
@click.argument("raw_transaction_id")
@click.pass_context
def show_split(ctx, raw_transaction_id: str):
    """Show the line items of a transaction."""
    db = ctx.obj["db"]
    service = SplitService(db)
    type_service = TransactionTypeService(db)

    try:
        rows = service.get_splits(raw_transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    for row in rows:
        code = type_service.code_of(row.transaction_type_id) or "-"
        category = row.category_id if row.category_id is not None else "-"
        click.echo(
            f"#{row.split_sequence} ID: {row.id} | {code:14s} | {row.amount:>15,.2f} | category {category}"
        )


def register_commands(cli):
    """Register split commands with main CLI."""
    cli.add_command(split_group, name="split")
