#!/usr/bin/env python3
"""
evmguard - Whitelist-gated EVM wallet CLI

Resolves addresses from hex, whitelisted wallet names or addressbook
contract names, refuses to move value to anything that is not
whitelisted, and drives native transfers, ERC20 transfers, WETH wrapping,
Uniswap V3 swaps and Uniswap V2 liquidity provision.
"""

import argparse
import logging
import sys
import os
from dataclasses import replace
from pathlib import Path

if sys.platform == "win32":
    os.system("")
    os.environ["PYTHONIOENCODING"] = "utf-8"
    if hasattr(sys.stdout, 'reconfigure'):
        sys.stdout.reconfigure(encoding='utf-8', errors='replace')
    if hasattr(sys.stderr, 'reconfigure'):
        sys.stderr.reconfigure(encoding='utf-8', errors='replace')

sys.path.insert(0, str(Path(__file__).parent))

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

console = Console()
err_console = Console(stderr=True)

from config import CHAINS, Settings, get_chain, normalize_network
from core.addressbook import default_addressbook
from core.chain import connect
from core.interface import EVMInterface
from modules.whitelist import Whitelist
from output.console import (
    print_addressbook,
    print_balance,
    print_block,
    print_result,
    print_token_balance,
    print_transaction,
    print_whitelist,
)

logger = logging.getLogger("evmguard")


def setup_logging(verbosity: int):
    """WARNING by default, INFO with -v, DEBUG with -vv."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="evmguard",
        description="Whitelist-gated EVM wallet operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  evmguard add-wallet-to-whitelist --address 0x... --name alice
  evmguard send-eth --to alice --amount 1000000000000000
  evmguard swap-tokens-uniswap-v3 --token-in usdc --token-out weth \\
      --amount-in 100 --amount-out-minimum 0 --recipient alice
  evmguard show-whitelist
        """,
    )
    parser.add_argument("--whitelist", help="Whitelist file (default: $EVMGUARD_WHITELIST or whitelist.json)")
    parser.add_argument("--env-file", help="Load environment variables from this file")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")

    sub = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    def network_command(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument(
            "--network",
            default="ethereum",
            help=f"Network: {', '.join(CHAINS)} (default: ethereum)",
        )
        return p

    # Guarded operations
    p = network_command("send-eth", "Send native currency to a whitelisted wallet")
    p.add_argument("--to", required=True, help="Recipient (address or wallet name)")
    p.add_argument("--amount", required=True, help="Amount in wei")

    p = network_command("send-erc20", "Send a whitelisted token to a whitelisted wallet")
    p.add_argument("--token", required=True, help="Token (address or addressbook name)")
    p.add_argument("--to", required=True, help="Recipient (address or wallet name)")
    p.add_argument("--amount", required=True, help="Whole tokens (base units with --raw)")
    p.add_argument("--raw", action="store_true", help="Amount is already in base units")

    p = network_command("wrap-eth", "Wrap native currency into WETH")
    p.add_argument("--amount", required=True, help="Amount in wei")

    p = network_command("swap-tokens-uniswap-v3", "Exact-input single-hop swap on Uniswap V3")
    p.add_argument("--token-in", required=True)
    p.add_argument("--token-out", required=True)
    p.add_argument("--amount-in", required=True, help="Whole tokens of token-in")
    p.add_argument("--amount-out-minimum", required=True, help="Whole tokens of token-out")
    p.add_argument("--recipient", required=True)

    p = network_command("add-liquidity-uniswap-v2", "Add liquidity to a Uniswap V2 pair")
    p.add_argument("--token-a", required=True)
    p.add_argument("--token-b", required=True)
    p.add_argument("--amount-a-desired", required=True, help="Whole tokens of token-a")
    p.add_argument("--amount-a-min", required=True, help="Whole tokens of token-a")
    p.add_argument("--to", required=True, help="Recipient of the LP tokens")
    p.add_argument("--deadline", type=int, default=0, help="Unix timestamp (default: now + 1 hour)")

    # Whitelist management
    p = sub.add_parser("add-wallet-to-whitelist", help="Whitelist a wallet")
    p.add_argument("--address", required=True)
    p.add_argument("--name")

    p = sub.add_parser("remove-wallet-from-whitelist", help="Remove a wallet from the whitelist")
    p.add_argument("--address", required=True)

    p = sub.add_parser("add-token-to-whitelist", help="Whitelist a token (reads its symbol on-chain)")
    p.add_argument("--address", required=True)
    p.add_argument("--chain", required=True, help="Network the token lives on")
    p.add_argument("--name")

    p = sub.add_parser("remove-token-from-whitelist", help="Remove a token from the whitelist")
    p.add_argument("--address", required=True)
    p.add_argument("--chain", required=True)

    sub.add_parser("show-whitelist", help="Print whitelisted wallets and tokens")
    network_command("show-addressbook", "List the known contracts on a network")

    # Read-only queries
    network_command("get-block-number", "Current block number")
    network_command("get-gas-price", "Current gas price")

    p = network_command("get-balance", "Native balance of an address")
    p.add_argument("--address", required=True)

    p = network_command("get-nonce", "Transaction count of an address")
    p.add_argument("--address", required=True)

    p = network_command("get-block-details", "Show a block")
    p.add_argument("--block-number", type=int, required=True)

    p = network_command("get-tx-details", "Show a transaction")
    p.add_argument("--tx-hash", required=True)

    p = network_command("get-erc20-balance", "Token balance of a wallet")
    p.add_argument("--wallet-address", required=True)
    p.add_argument("--token-address", required=True)

    network_command("subscribe-blocks", "Stream new blocks")
    network_command("subscribe-pending-transactions", "Stream pending transaction hashes")
    network_command("subscribe-logs", "Stream all logs")

    return parser


# ─── Whitelist commands ───

def cmd_add_wallet(args, settings, whitelist):
    info = whitelist.add_wallet(args.address, args.name)
    whitelist.save(settings.whitelist_path)
    console.print(f"[green]Wallet {info.address} added to whitelist[/green]")


def cmd_remove_wallet(args, settings, whitelist):
    removed = whitelist.remove_wallet(args.address)
    whitelist.save(settings.whitelist_path)
    if removed:
        console.print(f"[green]Wallet {escape(args.address)} removed from whitelist[/green]")
    else:
        console.print(f"[yellow]Wallet {escape(args.address)} was not whitelisted[/yellow]")


def cmd_add_token(args, settings, whitelist):
    chain = get_chain(args.chain)
    client = connect(args.chain, settings)
    info = whitelist.add_token(args.address, chain.chain_id, client, args.name)
    whitelist.save(settings.whitelist_path)
    console.print(
        f"[green]Token {escape(info.symbol)} ({info.address}) added to whitelist on {chain.name}[/green]"
    )


def cmd_remove_token(args, settings, whitelist):
    chain = get_chain(args.chain)
    info = whitelist.get_token(args.address, chain.chain_id)
    if info is None:
        console.print(f"[yellow]Token {escape(args.address)} was not whitelisted on {chain.name}[/yellow]")
        return
    whitelist.remove_token(info.address, chain.chain_id)
    whitelist.save(settings.whitelist_path)
    console.print(
        f"[green]Token {escape(info.symbol)} ({info.address}) removed from whitelist on {chain.name}[/green]"
    )


def cmd_show_whitelist(args, settings, whitelist):
    print_whitelist(console, whitelist)


def cmd_show_addressbook(args, settings, whitelist):
    get_chain(args.network)
    print_addressbook(console, default_addressbook(), normalize_network(args.network))


# ─── Guarded operations ───

def _run_guarded(args, settings, whitelist, description, operation):
    interface = EVMInterface.connect(args.network, whitelist, settings)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=True,
    ) as progress:
        progress.add_task(f"{description} on {interface.network}...", total=None)
        result = operation(interface)
    print_result(console, result, interface.chain.explorer_url)


def cmd_send_eth(args, settings, whitelist):
    _run_guarded(args, settings, whitelist, "Sending",
                 lambda i: i.send_eth(args.to, args.amount))


def cmd_send_erc20(args, settings, whitelist):
    _run_guarded(args, settings, whitelist, "Sending",
                 lambda i: i.send_erc20(args.token, args.to, args.amount, raw=args.raw))


def cmd_wrap_eth(args, settings, whitelist):
    _run_guarded(args, settings, whitelist, "Wrapping",
                 lambda i: i.wrap_eth(args.amount))


def cmd_swap_v3(args, settings, whitelist):
    _run_guarded(args, settings, whitelist, "Swapping", lambda i: i.swap_tokens_uniswap_v3(
        args.token_in, args.token_out, args.amount_in, args.amount_out_minimum, args.recipient,
    ))


def cmd_add_liquidity_v2(args, settings, whitelist):
    _run_guarded(args, settings, whitelist, "Adding liquidity", lambda i: i.add_liquidity_uniswap_v2(
        args.token_a, args.token_b, args.amount_a_desired, args.amount_a_min, args.to, args.deadline,
    ))


# ─── Read-only queries ───

def _interface(args, settings, whitelist) -> EVMInterface:
    return EVMInterface(args.network, connect(args.network, settings), whitelist, settings)


def cmd_block_number(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    console.print(f"Current block number on {interface.network}: {interface.get_block_number()}")


def cmd_gas_price(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    wei = interface.get_gas_price()
    console.print(f"Current gas price on {interface.network}: {wei} wei")
    console.print(f"Current gas price on {interface.network}: {wei / 1_000_000_000} gwei")


def cmd_balance(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    address, wei = interface.get_balance(args.address)
    print_balance(console, interface.network, address, wei)


def cmd_nonce(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    address, nonce = interface.get_nonce(args.address)
    console.print(f"Nonce for address {address} on {interface.network}: {nonce}")


def cmd_block_details(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    console.print(f"Block details for block {args.block_number} on {interface.network}:")
    print_block(console, interface.get_block_details(args.block_number))


def cmd_tx_details(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    console.print(f"Transaction details for {escape(args.tx_hash)} on {interface.network}:")
    print_transaction(console, interface.get_tx_details(args.tx_hash), interface.chain.explorer_url)


def cmd_erc20_balance(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    info = interface.get_erc20_balance(args.wallet_address, args.token_address)
    print_token_balance(console, interface.network, info)


def cmd_subscribe_blocks(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    console.print(f"Subscribing to new blocks on {interface.network}...")
    for block in interface.subscribe_blocks():
        console.print(f"New block: {block.get('number')}")


def cmd_subscribe_pending(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    console.print(f"Subscribing to pending transactions on {interface.network}...")
    for tx_hash in interface.subscribe_pending_transactions():
        console.print(f"Pending transaction: {tx_hash}")


def cmd_subscribe_logs(args, settings, whitelist):
    interface = _interface(args, settings, whitelist)
    console.print(f"Subscribing to logs on {interface.network}...")
    for log in interface.subscribe_logs():
        console.print(f"New log: {escape(str(log))}")


COMMANDS = {
    "send-eth": cmd_send_eth,
    "send-erc20": cmd_send_erc20,
    "wrap-eth": cmd_wrap_eth,
    "swap-tokens-uniswap-v3": cmd_swap_v3,
    "add-liquidity-uniswap-v2": cmd_add_liquidity_v2,
    "add-wallet-to-whitelist": cmd_add_wallet,
    "remove-wallet-from-whitelist": cmd_remove_wallet,
    "add-token-to-whitelist": cmd_add_token,
    "remove-token-from-whitelist": cmd_remove_token,
    "show-whitelist": cmd_show_whitelist,
    "show-addressbook": cmd_show_addressbook,
    "get-block-number": cmd_block_number,
    "get-gas-price": cmd_gas_price,
    "get-balance": cmd_balance,
    "get-nonce": cmd_nonce,
    "get-block-details": cmd_block_details,
    "get-tx-details": cmd_tx_details,
    "get-erc20-balance": cmd_erc20_balance,
    "subscribe-blocks": cmd_subscribe_blocks,
    "subscribe-pending-transactions": cmd_subscribe_pending,
    "subscribe-logs": cmd_subscribe_logs,
}


def run_command(args):
    """Load settings and the whitelist, then dispatch one command."""
    if args.env_file:
        load_dotenv(args.env_file)
    else:
        load_dotenv()

    settings = Settings.from_env()
    if args.whitelist:
        settings = replace(settings, whitelist_path=Path(args.whitelist))

    whitelist = Whitelist.load_or_create(settings.whitelist_path)
    COMMANDS[args.command](args, settings, whitelist)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        run_command(args)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        return 1
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
