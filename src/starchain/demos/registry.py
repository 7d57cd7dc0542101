# Star Registry Demo Logic
import asyncio

from rich.align import Align
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from starchain.core import Blockchain
from starchain.exceptions import ClaimError
from starchain.wallet import address_from_public_key, generate_private_key, sign_message

console = Console()

STARS = [
    {"ra": "16h 29m 1.0s", "dec": "-26° 29' 24.9", "story": "Antares, heart of the scorpion"},
    {"ra": "5h 55m 10.3s", "dec": "7° 24' 25.4", "story": "Betelgeuse, shoulder of Orion"},
    {"ra": "6h 45m 8.9s", "dec": "-16° 42' 58.0", "story": "Sirius, brightest in the night sky"},
    {"ra": "18h 36m 56.3s", "dec": "38° 47' 1.3", "story": "Vega, summer triangle"},
    {"ra": "7h 39m 18.1s", "dec": "5° 13' 30.0", "story": "Procyon, little dog star"},
]

def render_ui(layout, bc: Blockchain, state):
    """Updates the UI layout based on current state."""
    layout["header"].update(Panel(
        Align.center(f"🔭 STAR REGISTRY | HEIGHT: {bc.get_chain_height()}"),
        style="bold white on blue"
    ))

    chain_table = Table(title="Chain", box=None)
    chain_table.add_column("Height", style="cyan", justify="right")
    chain_table.add_column("Owner", style="white")
    chain_table.add_column("Hash", style="dim green")
    chain_table.add_column("Previous", style="dim")
    for block in bc.get_blocks()[-8:]:
        data = block.get_body_data() or {}
        owner = data.get("owner", "[bold]GENESIS[/bold]") if isinstance(data, dict) else "?"
        previous = block.previous_block_hash[:10] + "..." if block.previous_block_hash else "-"
        chain_table.add_row(str(block.height), owner, block.hash[:10] + "...", previous)
    layout["chain"].update(Panel(chain_table, border_style="cyan"))

    log_table = Table(box=None, show_header=False)
    for log in state["logs"]:
        log_table.add_row(log)
    layout["log"].update(Panel(log_table, title="Registry Activity", border_style="white"))

    return layout

async def run_claims(bc: Blockchain, state, refresh, claims: int, delay: float):
    """Executes the scripted claim sequence."""

    def log(msg):
        state["logs"].append(msg)
        if len(state["logs"]) > 8:
            state["logs"].pop(0)
        refresh()

    # Two astronomers, Alice registers most of the stars
    alice_key = generate_private_key()
    bob_key = generate_private_key()
    alice = address_from_public_key(alice_key.get_verifying_key())
    bob = address_from_public_key(bob_key.get_verifying_key())
    state["alice"] = alice

    for i in range(claims):
        key, address = (bob_key, bob) if i % 3 == 2 else (alice_key, alice)
        message = bc.request_message_ownership_verification(address)
        log(f"[dim]Challenge issued:[/dim] {message}")
        signature = sign_message(message, key)
        block = await bc.submit_star(address, message, signature, STARS[i % len(STARS)])
        log(f"[green]CLAIMED[/green] block #{block.height} by {address[:10]}...")
        await asyncio.sleep(delay)

    # Bob tries to claim a star in Alice's name
    message = bc.request_message_ownership_verification(alice)
    forged = sign_message(message, bob_key)
    try:
        await bc.submit_star(alice, message, forged, STARS[0])
    except ClaimError as e:
        log(f"[bold red]REJECTED[/bold red] {e}")
    await asyncio.sleep(delay)

def run_registry_demo(claims: int = 4, delay: float = 0.8) -> Blockchain:
    """Runs the star registry demo against a fresh in-memory chain."""
    bc = Blockchain()

    layout = Layout()
    layout.split_column(
        Layout(name="header", size=3),
        Layout(name="chain", ratio=2),
        Layout(name="log", size=12)
    )
    state = {"logs": [], "alice": None}

    def update_ui():
        return render_ui(layout, bc, state)

    with Live(update_ui(), refresh_per_second=4, console=console) as live:
        asyncio.run(run_claims(bc, state, lambda: live.update(update_ui()), claims, delay))

    # Summary
    stars = bc.get_stars_by_wallet_address(state["alice"])
    star_table = Table(title=f"Stars owned by {state['alice']}")
    star_table.add_column("RA", style="cyan")
    star_table.add_column("DEC", style="magenta")
    star_table.add_column("Story", style="white")
    for entry in stars:
        star = entry["star"]
        star_table.add_row(star["ra"], star["dec"], star["story"])
    console.print(star_table)

    errors = bc.validate_chain()
    if errors:
        console.print(Panel("\n".join(errors), title="Validation Failed", border_style="red"))
    else:
        console.print(Panel(
            f"[green]✅ All {bc.get_chain_height() + 1} blocks valid.[/green]",
            title="Validation Result", border_style="green"
        ))
    return bc
