from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def print_error(message: str) -> None:
    err_console.print(f"[red bold]Error:[/red bold] {escape(message)}")


def print_value(value: str) -> None:
    console.print(value, markup=False)


def print_set_result(namespace: str, key: str, ttl: float | None) -> None:
    expiry = "never expires" if ttl is None else f"expires in {ttl:g}s"
    console.print(f"[bold green]Cached[/bold green] [bold]'{escape(key)}'[/bold] in '{escape(namespace)}' ({expiry})")


def print_invalidated(namespace: str, key: str) -> None:
    console.print(f"[bold yellow]Invalidated[/bold yellow] [bold]'{escape(key)}'[/bold] in '{escape(namespace)}'")


def print_keys(namespace: str, keys: list[str]) -> None:
    if not keys:
        console.print(f"No valid keys in '{escape(namespace)}'.")
        return
    table = Table(title=f"Valid keys in '{escape(namespace)}'")
    table.add_column("#", justify="right")
    table.add_column("Key")
    for i, key in enumerate(keys, 1):
        table.add_row(str(i), Text(key))
    console.print(table)
