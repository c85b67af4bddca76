from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree
from datetime import datetime

from atoms import AtomKind

console = Console()

# Byte strings longer than this are shown truncated
PREVIEW_BYTES = 64


def _preview(value: bytes) -> str:
    """Readable form of a byte string: text when printable, hex otherwise."""
    shown = value[:PREVIEW_BYTES]
    if all(32 <= b < 127 for b in shown):
        text = shown.decode('ascii')
    else:
        text = shown.hex()
    if len(value) > PREVIEW_BYTES:
        text += "..."
    return text


class FluxUI:
    def __init__(self):
        self.console = console

    def header(self, title):
        """Returns the branding header."""
        grid = Table.grid(expand=True)
        grid.add_column(justify="center", ratio=1)
        grid.add_column(justify="right")

        grid.add_row(Text(f"⚡ {title}", style="bold cyan", justify="center"),
                     datetime.now().strftime("%H:%M:%S"))

        return Panel(grid, style="white on black")

    def print_log(self, message, level="INFO"):
        """Prints a styled log message."""
        color = "green" if level == "INFO" else "red"
        if level == "WARNING": color = "yellow"

        time_str = f"[{datetime.now().strftime('%H:%M:%S')}]"
        self.console.print(f"{escape(time_str)} [bold {color}]{level}[/]: {escape(str(message))}",
                           highlight=False)

    def build_tree(self, atom, label="root"):
        """Builds a rich Tree mirroring the atom tree."""
        tree = Tree(self._label(label, atom))
        self._add_children(tree, atom)
        return tree

    def _label(self, label, atom):
        kind = atom.kind
        if kind is AtomKind.INTEGER:
            return Text.assemble((str(label), "bold"), " ", ("int", "magenta"), f" {atom.value}")
        if kind is AtomKind.STRING:
            return Text.assemble((str(label), "bold"), " ", ("str", "green"),
                                 f"[{len(atom)}] {_preview(atom.value)}")
        if kind is AtomKind.LIST:
            return Text.assemble((str(label), "bold"), " ", ("list", "cyan"), f" ({len(atom)} items)")
        return Text.assemble((str(label), "bold"), " ", ("dict", "blue"), f" ({len(atom)} keys)")

    def _add_children(self, tree, atom):
        if atom.kind is AtomKind.LIST:
            for index, child in enumerate(atom):
                branch = tree.add(self._label(index, child))
                self._add_children(branch, child)
        elif atom.kind is AtomKind.DICTIONARY:
            for key, child in atom.entries():
                branch = tree.add(self._label(_preview(key.value), child))
                self._add_children(branch, child)

    def show_atom(self, atom, title="Decoded Value"):
        self.console.print(Panel(self.build_tree(atom), title=title, border_style="blue"))

    def show_check(self, rows):
        """Displays the round trip report as a two column table."""
        table = Table(title="Round Trip Check", box=None)
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="magenta")

        for name, value in rows:
            table.add_row(name, str(value))

        self.console.print(Panel(table, border_style="blue"))


ui = FluxUI()
