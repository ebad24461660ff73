"""Terminal rendering of whitelists, operation results, blocks and transactions."""

from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from web3 import Web3

from config import CHAINS, chain_name_for_id
from core.interface import OperationResult
from modules.token import format_units


def explorer_link(explorer_url: str, kind: str, value: str, text: Optional[str] = None) -> str:
    """Rich markup for a clickable explorer link (kind: address, tx, block)."""
    return f"[link={explorer_url}/{kind}/{value}]{text or value}[/link]"


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    return str(value)


def print_whitelist(console: Console, whitelist) -> None:
    """Render wallets and tokens as two tables."""
    wallets = Table(title="Whitelisted wallets")
    wallets.add_column("Name", style="cyan")
    wallets.add_column("Address")
    for info in whitelist.wallets():
        wallets.add_row(escape(info.name or "-"), info.address)

    tokens = Table(title="Whitelisted tokens")
    tokens.add_column("Symbol", style="cyan")
    tokens.add_column("Name")
    tokens.add_column("Chain")
    tokens.add_column("Address")
    for info in whitelist.tokens():
        chain = chain_name_for_id(info.chain_id) or "unknown"
        tokens.add_row(escape(info.symbol), escape(info.name or "-"), f"{chain} ({info.chain_id})", info.address)

    if not whitelist.wallets() and not whitelist.tokens():
        console.print("[yellow]Whitelist is empty[/yellow]")
        return
    console.print(wallets)
    console.print(tokens)


def print_result(console: Console, result: OperationResult, explorer_url: str) -> None:
    """Render every confirmed step of an operation."""
    table = Table(title=result.operation)
    table.add_column("Step", style="cyan")
    table.add_column("Transaction")
    table.add_column("Status")
    table.add_column("Block", justify="right")
    table.add_column("Gas used", justify="right")
    for step in result.steps:
        table.add_row(
            step.label,
            explorer_link(explorer_url, "tx", step.tx_hash),
            "[green]success[/green]" if step.receipt.get("status") == 1 else "[red]failed[/red]",
            str(step.block_number),
            str(step.gas_used),
        )
    console.print(table)

    for key, value in result.details.items():
        console.print(f"  {key}: {escape(str(value))}")
    console.print(f"[green]{result.operation} confirmed[/green]")


def print_block(console: Console, block: Dict[str, Any]) -> None:
    table = Table(show_header=True)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    rows = [
        ("Hash", _hex(block.get("hash"))),
        ("Parent Hash", _hex(block.get("parentHash"))),
        ("Number", str(block.get("number"))),
        ("Timestamp", str(block.get("timestamp"))),
        ("Nonce", _hex(block.get("nonce"))),
        ("Difficulty", str(block.get("difficulty"))),
        ("Gas Limit", str(block.get("gasLimit"))),
        ("Gas Used", str(block.get("gasUsed"))),
        ("Base Fee Per Gas", str(block.get("baseFeePerGas"))),
        ("Transactions", f"{len(block.get('transactions', []))} transactions"),
    ]
    for field_name, value in rows:
        table.add_row(field_name, value)
    console.print(table)


def print_transaction(console: Console, tx: Dict[str, Any], explorer_url: str) -> None:
    table = Table(show_header=True)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    tx_hash = _hex(tx.get("hash"))
    rows = [
        ("Hash", tx_hash),
        ("From", str(tx.get("from"))),
        ("To", str(tx.get("to"))),
        ("Nonce", str(tx.get("nonce"))),
        ("Value", str(tx.get("value"))),
        ("Gas Price", str(tx.get("gasPrice"))),
        ("Gas", str(tx.get("gas"))),
        ("Link", explorer_link(explorer_url, "tx", tx_hash, "Explorer")),
    ]
    for field_name, value in rows:
        table.add_row(field_name, value)
    console.print(table)


def print_balance(console: Console, network: str, address: str, wei: int) -> None:
    chain = CHAINS[network]
    console.print(f"Balance of {address} on {network}: {wei} wei")
    console.print(f"Balance in {chain.native_symbol}: {format_units(wei, 18)} {chain.native_symbol}")


def print_token_balance(console: Console, network: str, info: Dict[str, Any]) -> None:
    console.print(
        f"Balance of {info['wallet']} on {network}: "
        f"{format_units(info['balance'], info['decimals'])} {escape(info['symbol'])} "
        f"({info['balance']} base units)"
    )


def print_addressbook(console: Console, addressbook, network: str) -> None:
    """List the contracts the addressbook knows on `network`."""
    table = Table(title=f"Known contracts on {network}")
    table.add_column("Name", style="cyan")
    table.add_column("Address")
    for name in addressbook.contract_names():
        address = addressbook.contract_address(name, network)
        if address is not None:
            table.add_row(name, address)
    console.print(table)
