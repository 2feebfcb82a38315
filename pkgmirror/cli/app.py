from __future__ import annotations

import typer

from pkgmirror.cli.commands.mirror import mirror

# A single registered command: typer runs it directly, so flags go straight
# after the program name (`pkgmirror --deploy --package cypress`).
app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
)

app.command()(mirror)


def main() -> None:
    app()
