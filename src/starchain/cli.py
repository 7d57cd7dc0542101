import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from starchain.config import settings
from starchain.core import Blockchain
from starchain.demos.registry import run_registry_demo
from starchain.wallet import verify_message

# Initialize Rich Console
console = Console()
# Logs go to stderr so piped output stays clean
log_console = Console(stderr=True)

def setup_logging(level=None):
    """Routes library logging through rich."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=log_console, rich_tracebacks=True)],
        force=True,
    )

def cmd_info(args):
    """Display information about the current configuration."""
    table = Table(title="Star Registry Configuration", box=None)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("App Name", settings.app_name)
    table.add_row("Genesis Message", settings.genesis_message)
    table.add_row("Protocol Tag", settings.protocol_tag)
    table.add_row("Claim Window", f"{settings.claim_window_seconds}s")
    table.add_row("Log Level", settings.log_level)

    console.print(Panel(table, title="System Info", border_style="blue"))

def cmd_challenge(args):
    """Print the ownership challenge for an address."""
    bc = Blockchain()
    message = bc.request_message_ownership_verification(args.address)
    if args.raw:
        # Print raw for piping into a wallet
        print(message)
        return
    console.print(Panel(
        f"[bold cyan]{message}[/bold cyan]\n\n"
        f"Sign this message with the wallet owning {args.address}.\n"
        f"[yellow]It expires in {settings.claim_window_seconds} seconds.[/yellow]",
        title="Ownership Challenge",
        border_style="blue"
    ))

def cmd_verify_message(args):
    """Check a signed message against an address."""
    if verify_message(args.message, args.address, args.signature):
        console.print(Panel(f"""[green]✅ Signature Verified![/green]
Address: {args.address}
Message: {args.message}""", title="Verification Result", border_style="green"))
    else:
        console.print(Panel(
            f"[red]❌ Signature does not match address {args.address}.[/red]",
            title="Verification Failed",
            border_style="red"
        ))
        sys.exit(1)

def cmd_demo(args):
    """Run the interactive registry demo."""
    run_registry_demo(claims=args.claims, delay=args.delay)

class RichHelpFormatter(argparse.RawTextHelpFormatter):
    """A custom formatter that adds a bit of style to help output."""
    def _format_action_invocation(self, action):
        if not action.option_strings:
            return super()._format_action_invocation(action)
        return ", ".join(action.option_strings)

def main():
    help_text = """
--------------------------------------------------------------------------------
🔎 EXAMPLES & WORKFLOWS
--------------------------------------------------------------------------------

1. Check the system info:
   $ starchain info

2. Request a challenge for your wallet address:
   $ starchain challenge -a 1F3sAm6ZtwLAUnj7d38pGFxtP3RVEvtsbV
   > Sign the printed message in Electrum or Bitcoin Core.

3. Check a signature before submitting a claim:
   $ starchain verify-message -a <ADDRESS> -m "<MESSAGE>" -s <SIGNATURE>

4. Watch the full claim flow on a throwaway chain:
   $ starchain demo --claims 5
--------------------------------------------------------------------------------
"""
    parser = argparse.ArgumentParser(
        prog="starchain",
        description="Star Registry: Signed Ownership Claims on a Private Chain",
        formatter_class=RichHelpFormatter,
        epilog=help_text
    )
    parser.add_argument('-l', '--log-level', type=str, default=None, help='Log level (overrides config)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands', metavar='COMMAND')

    # INFO
    parser_info = subparsers.add_parser(
        'info', help='Display configuration', formatter_class=RichHelpFormatter
    )
    parser_info.set_defaults(func=cmd_info)

    # CHALLENGE
    parser_challenge = subparsers.add_parser(
        'challenge', help='Request an ownership challenge message', formatter_class=RichHelpFormatter
    )
    parser_challenge.add_argument('-a', '--address', type=str, required=True, help='Wallet address')
    parser_challenge.add_argument('--raw', action='store_true', help='Print the bare message only')
    parser_challenge.set_defaults(func=cmd_challenge)

    # VERIFY-MESSAGE
    parser_verify = subparsers.add_parser(
        'verify-message', help='Verify a Bitcoin signed message', formatter_class=RichHelpFormatter
    )
    parser_verify.add_argument('-a', '--address', type=str, required=True, help='Wallet address')
    parser_verify.add_argument('-m', '--message', type=str, required=True, help='The signed message')
    parser_verify.add_argument('-s', '--signature', type=str, required=True, help='Base64 signature')
    parser_verify.set_defaults(func=cmd_verify_message)

    # DEMO
    parser_demo = subparsers.add_parser(
        'demo', help='Run the interactive claim demo', formatter_class=RichHelpFormatter
    )
    parser_demo.add_argument('--claims', type=int, default=4, help='Number of stars to claim')
    parser_demo.add_argument('--delay', type=float, default=0.8, help='Pause between steps (seconds)')
    parser_demo.set_defaults(func=cmd_demo)

    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit(0)

    args = parser.parse_args()
    setup_logging(args.log_level)

    if hasattr(args, 'func'):
        args.func(args)
    else:
        parser.print_help()

if __name__ == "__main__":
    main()
