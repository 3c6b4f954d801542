"""
lcdsim - HD44780 Simulator Command-Line Interface
=================================================

Runs the real driver against the chip simulator, so a panel layout,
custom glyphs or wrap policy can be checked without hardware.

Usage Examples
--------------
Show two lines on a 16x2 panel:
    $ lcdsim "Hello" "World"

20x4 panel, 8-bit bus, with the executed instruction trace:
    $ lcdsim -l 4 -c 20 -b 8 --trace "Line one" "Line two"

Define a custom glyph in slot 0 and render the panel to PNG:
    $ lcdsim -g 0:00,0a,1f,1f,0e,04,00,00 --png heart.png "I \\x00 LCDs"

Exit Codes
----------
0 - Success
1 - Driver error
2 - Invalid arguments, configuration or address
3 - Internal error

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

import logging
from pathlib import Path
from typing import Optional

import click

from hd44780 import __version__
from hd44780.cli.errors import handle_cli_exception
from hd44780.config import DisplayConfig
from hd44780.controller import initialize
from hd44780.simulator import HD44780Simulator, SimulatedTransport
from hd44780.timing import sleep_us

logger = logging.getLogger(__name__)


# =============================================================================
# Option Parsing
# =============================================================================

def parse_glyph(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]):
    """Parse repeated SLOT:HH,HH,... glyph definitions."""
    glyphs = []
    for value in values:
        try:
            slot_text, rows_text = value.split(":", 1)
            rows = [int(r, 16) for r in rows_text.split(",") if r.strip()]
            glyphs.append((int(slot_text, 0), rows))
        except ValueError:
            raise click.BadParameter(
                f"expected SLOT:HH,HH,... (hex rows), got {value!r}", param=param
            )
    return glyphs


def parse_row_bases(ctx: click.Context, param: click.Parameter, value: Optional[str]):
    if value is None:
        return None
    try:
        return tuple(int(b.strip(), 0) for b in value.split(","))
    except ValueError:
        raise click.BadParameter(f"expected comma-separated addresses, got {value!r}")


def decode_escapes(text: str) -> str:
    """Turn \\xNN sequences into the corresponding character codes."""
    return text.encode("latin-1", errors="replace").decode("unicode_escape")


def format_grid(lines: list[str], columns: int) -> str:
    border = "+" + "-" * columns + "+"
    body = [f"|{line.ljust(columns)}|" for line in lines]
    return "\n".join([border, *body, border])


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument("text", nargs=-1)
@click.option(
    "-l", "--lines",
    type=click.Choice(["1", "2", "4"]),
    default="2",
    help="Display lines (default: 2)",
)
@click.option(
    "-c", "--columns",
    type=int,
    default=None,
    help="Visible columns (default: 16, or 20 for 4 lines)",
)
@click.option(
    "-b", "--bus-width",
    type=click.Choice(["4", "8"]),
    default="4",
    help="Data bus width (default: 4)",
)
@click.option(
    "--font",
    type=click.Choice(["5x8", "5x10"], case_sensitive=False),
    default="5x8",
    help="Character font (default: 5x8)",
)
@click.option(
    "--wrap",
    type=click.Choice(["wrap", "truncate", "none"], case_sensitive=False),
    default="wrap",
    help="Behaviour at the end of a row (default: wrap)",
)
@click.option(
    "--row-bases",
    callback=parse_row_bases,
    default=None,
    help="Override DDRAM row bases, e.g. 0x00,0x40,0x10,0x50",
)
@click.option(
    "-g", "--glyph",
    multiple=True,
    callback=parse_glyph,
    help="Define a custom glyph as SLOT:HH,HH,... (can be repeated)",
)
@click.option("--cursor", is_flag=True, help="Show the cursor")
@click.option("--blink", is_flag=True, help="Blink the cursor")
@click.option("--trace", is_flag=True, help="Print every instruction the chip executed")
@click.option(
    "--png",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also render the panel to a PNG file (requires Pillow)",
)
@click.option("--realtime", is_flag=True, help="Honour instruction delays")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="lcdsim")
def main(
    text: tuple[str, ...],
    lines: str,
    columns: Optional[int],
    bus_width: str,
    font: str,
    wrap: str,
    row_bases: Optional[tuple[int, ...]],
    glyph: list[tuple[int, list[int]]],
    cursor: bool,
    blink: bool,
    trace: bool,
    png: Optional[Path],
    realtime: bool,
    verbose: bool,
) -> None:
    """
    Drive a simulated HD44780 display and print what it shows.

    Each TEXT argument is written on its own row. \\xNN escapes insert raw
    character codes (0-7 show custom glyphs).

    \b
    Examples:
        lcdsim "Hello" "World"
        lcdsim -l 4 -c 20 --trace "Line one"
        lcdsim -g 0:0e,11,11,11,0e --png out.png "\\x00 ok"
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = DisplayConfig.from_dict({
            "bus_width": bus_width,
            "lines": lines,
            "visible_columns": columns,
            "font": font,
            "wrap_mode": wrap,
            "row_base_addresses": row_bases,
            "cursor_visible": cursor,
            "cursor_blink": blink,
        })
        simulator = HD44780Simulator.for_config(config)
        transport = SimulatedTransport(simulator, config.bus_width)
        delay = sleep_us if realtime else (lambda us: None)
        lcd = initialize(config, transport, delay=delay)

        for slot, rows in glyph:
            lcd.define_glyph(slot, rows)
        if text:
            lcd.write_str("\n".join(decode_escapes(t) for t in text))

        click.echo(format_grid(simulator.get_text_grid(), config.visible_columns))
        if verbose:
            bases = ", ".join(f"0x{b:02X}" for b in lcd.mapper.row_bases)
            click.echo(f"Row bases: {bases}")
            click.echo(f"Cursor: {lcd.cursor}  address: 0x{lcd.state.address:02X}")

        if trace:
            for rs, value in simulator.log:
                register = "DATA" if rs else "CMD "
                click.echo(f"{register} 0x{value:02X}")

        if png is not None:
            image = simulator.render_image()
            if image is None:
                raise click.BadParameter(
                    "Image rendering requires Pillow. Install with: pip install Pillow"
                )
            png.write_bytes(image)
            click.echo(f"Wrote {png}")

    except click.BadParameter:
        raise
    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
