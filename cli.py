# cli.py: interactive catalog console
import os
import sys
from typing import Any, Dict, List, Optional

import requests
from rich import box
from rich.console import Console
from rich.prompt import Confirm, FloatPrompt, IntPrompt
from rich.table import Table

from prompt_toolkit import prompt
from prompt_toolkit.completion import PathCompleter, WordCompleter

from sdk.pystore import StoreClient, decode_image

console = Console()
client = StoreClient(base_url=os.environ.get("STORE_URL", "http://127.0.0.1:3000"))

MENU = [
    ("1", "list products"),
    ("2", "show one product"),
    ("3", "upload product"),
    ("4", "update product"),
    ("5", "delete product"),
    ("6", "checkout"),
    ("q", "quit"),
]


def call(fn, *args, done: Optional[str] = None):
    """Run one SDK call; print the failure and return None instead of raising."""
    try:
        with console.status("talking to the store..."):
            result = fn(*args)
    except requests.HTTPError as e:
        try:
            detail = e.response.json().get("error", e.response.text)
        except ValueError:
            detail = e.response.text
        console.print(f"[red]{e.response.status_code}: {detail}[/red]")
        return None
    except (requests.RequestException, OSError) as e:
        console.print(f"[red]{e}[/red]")
        return None
    if done:
        console.print(f"[green]{done}[/green]")
    return result


def show_products(products: List[Dict[str, Any]]):
    if not products:
        console.print("[yellow]No products[/yellow]")
        return
    table = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan")
    for col in ("ID", "Name", "Code", "Price", "Qty", "Image"):
        table.add_column(col, justify="left" if col in ("Name", "Code") else "right")
    for p in products:
        image = decode_image(p)
        qty = p["prod_quan"]
        table.add_row(
            str(p["prod_id"]),
            p["prod_name"],
            p["prod_code"],
            f"{float(p['prod_price']):.2f}",
            f"[red]{qty}[/red]" if qty == 0 else str(qty),
            f"{len(image)} B" if image else "-",
        )
    console.print(table)


def show_receipt(receipt: Dict[str, Any]):
    table = Table("Product", "Taken", "Left", box=box.SIMPLE, title=receipt.get("message"))
    for line in receipt.get("items", []):
        table.add_row(str(line["prod_id"]), str(line["quantity"]), str(line["prod_quan"]))
    console.print(table)


def id_completer():
    products = call(client.list_products) or []
    return WordCompleter([str(p["prod_id"]) for p in products])


def ask_product_id() -> Optional[int]:
    raw = prompt("product id: ", completer=id_completer()).strip()
    if not raw.isdigit():
        console.print("[red]product ids are integers[/red]")
        return None
    return int(raw)


def ask_product_fields(current: Optional[Dict[str, Any]] = None):
    current = current or {}
    name = prompt("name: ", default=current.get("prod_name", ""))
    price = FloatPrompt.ask("price", default=float(current.get("prod_price", 0)))
    qty = IntPrompt.ask("quantity", default=int(current.get("prod_quan", 0)))
    code = prompt("code: ", default=current.get("prod_code", ""))
    image = prompt("image path (blank keeps/omits): ", completer=PathCompleter()).strip()
    return name, price, qty, code, image or None


def do_list():
    products = call(client.list_products)
    if products is not None:
        show_products(products)


def do_show():
    pid = ask_product_id()
    if pid is not None:
        product = call(client.get_product, pid)
        if product:
            show_products([product])


def do_upload():
    fields = ask_product_fields()
    created = call(client.upload_product, *fields, done="uploaded")
    if created:
        console.print(f"new product id: [bold]{created['prod_id']}[/bold]")


def do_update():
    pid = ask_product_id()
    current = call(client.get_product, pid) if pid is not None else None
    if current:
        updated = call(client.update_product, pid, *ask_product_fields(current), done="updated")
        if updated:
            show_products([updated["updatedProduct"]])


def do_delete():
    pid = ask_product_id()
    if pid is not None and Confirm.ask(f"delete product {pid}?"):
        call(client.delete_product, pid, done="deleted")


def do_checkout():
    raw = prompt("product ids, space separated: ", completer=id_completer())
    try:
        ids = [int(part) for part in raw.split()]
    except ValueError:
        console.print("[red]product ids are integers[/red]")
        return
    if not ids:
        return
    r = call(client.checkout, ids)
    if r is None:
        return
    body = r.json()
    if r.status_code == 200:
        show_receipt(body)
    else:
        console.print(f"[red]checkout failed ({body.get('code', r.status_code)}): {body.get('error', body)}[/red]")


ACTIONS = {"1": do_list, "2": do_show, "3": do_upload, "4": do_update, "5": do_delete, "6": do_checkout}


def menu():
    console.print(f"[bold]PyStore catalog[/bold] at {client.base_url}")
    while True:
        console.print("  ".join(f"[cyan]{key}[/cyan] {label}" for key, label in MENU))
        choice = prompt("> ", completer=WordCompleter([key for key, _ in MENU])).strip().lower()
        if choice in ("q", "quit", "exit"):
            return
        action = ACTIONS.get(choice)
        if action is None:
            console.print("[yellow]unknown option[/yellow]")
            continue
        action()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except (KeyboardInterrupt, EOFError):
        sys.exit(1)
