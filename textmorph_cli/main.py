import logging
from pathlib import Path
from typing import List, Optional

import typer

from textmorph import Config, MemorySurface, Morph, edit_distance, patch_lines
from textmorph.errors import ConfigError
from textmorph.examples import EXAMPLES


# Create the main Typer application object
app = typer.Typer(
    name="textmorph",
    help="Developer CLI for the textmorph rendering engine.",
    add_completion=False
)


def _load_config(ctx: typer.Context) -> Config:
    return ctx.obj["config"]


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to a textmorph.yaml file."
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."
    ),
):
    """
    Render the bundled examples and inspect the text patcher.
    """
    try:
        cfg = Config(config)
    except ConfigError as e:
        print(f"❌ Error: {e}")
        raise typer.Exit(code=1)

    level = (log_level or cfg.get("log_level", "WARNING")).upper()
    if not isinstance(logging.getLevelName(level), int):
        print(f"❌ Error: unknown log level '{level}'")
        raise typer.Exit(code=1)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    ctx.obj = {"config": cfg}


@app.command()
def examples():
    """
    Lists the bundled example components.
    """
    for name, (_factory, description) in EXAMPLES.items():
        print(f"{name:<10} {description}")


@app.command()
def render(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the example to render."),
    press: List[str] = typer.Option(
        [], "--press", help="Key press to simulate before printing, as ROW:COL:KEY (repeatable)."
    ),
    mode: str = typer.Option("n", "--mode", help="Input mode for simulated key presses."),
):
    """
    Mounts an example on an in-memory surface and prints the resulting text.
    """
    if name not in EXAMPLES:
        print(f"❌ Error: unknown example '{name}'. Try `textmorph examples`.")
        raise typer.Exit(code=1)

    factory, _description = EXAMPLES[name]
    surface = MemorySurface(mode=mode)
    morph = Morph(surface, config=_load_config(ctx))
    morph.mount(factory())

    for press_arg in press:
        try:
            row, col, key = press_arg.split(":", 2)
            surface.set_cursor((int(row), int(col)))
        except (ValueError, IndexError):
            print(f"❌ Error: --press expects ROW:COL:KEY, got '{press_arg}'")
            raise typer.Exit(code=1)
        surface.feed_key(key)

    print(surface.text)


@app.command()
def diff(
    old: Path = typer.Argument(..., exists=True, dir_okay=False, help="The original file."),
    new: Path = typer.Argument(..., exists=True, dir_okay=False, help="The target file."),
):
    """
    Prints the line and character edits that turn OLD into NEW.
    """
    old_lines = old.read_text(encoding="utf-8").split("\n")
    new_lines = new.read_text(encoding="utf-8").split("\n")

    surface = MemorySurface(old_lines)
    edits = patch_lines(surface, old_lines, new_lines)

    for edit in edits:
        if edit.target == "lines":
            if edit.replacement:
                print(f"insert line {edit.start}: {edit.replacement[0]!r}")
            else:
                print(f"delete line {edit.start}")
        else:
            start, stop = edit.start, edit.end
            print(f"replace {start.row}:{start.col}-{stop.row}:{stop.col} with {edit.replacement[0]!r}")

    if surface.get_lines() != new_lines:
        print("❌ Error: patched text does not match the target")
        raise typer.Exit(code=1)

    print(f"{len(edits)} edit(s), {edit_distance(old_lines, new_lines)} line(s) differ")


if __name__ == "__main__":
    app()
