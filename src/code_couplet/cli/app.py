import logging
from typing import Annotated

import typer

from code_couplet.cli.check import check
from code_couplet.cli.pins import auto_link, fix, link, pins, unlink, where
from code_couplet.cli.serve import serve_app
from code_couplet.cli.watch import watch
from code_couplet.config import get_settings

app = typer.Typer(
    name="code-couplet",
    help="Code Couplet CLI: pin comments to the code they describe and detect drift.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output.")] = False,
) -> None:
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


app.command("check")(check)
app.command("pins")(pins)
app.command("where")(where)
app.command("link")(link)
app.command("auto-link")(auto_link)
app.command("unlink")(unlink)
app.command("fix")(fix)
app.command("watch")(watch)
app.add_typer(serve_app, name="serve")


def main() -> None:
    app()
