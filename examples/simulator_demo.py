#!/usr/bin/env python3
"""
HD44780 Simulator Demo
======================

This script demonstrates how to use the hd44780 driver against the
bundled chip simulator to:
1. Bring up a 20x4 panel on a 4-bit bus
2. Write text on every row
3. Define and show a custom glyph
4. Scroll the display
5. Render a screenshot

Usage:
    python examples/simulator_demo.py
"""

from pathlib import Path

from hd44780 import (
    BusWidth,
    DisplayConfig,
    HD44780Simulator,
    SimulatedTransport,
    initialize,
)


def show(sim):
    for line in sim.get_text_grid():
        print(f"  |{line}|")


def main():
    output_dir = Path("trash")
    output_dir.mkdir(exist_ok=True)

    # ==========================================================================
    # 1. Create a panel and initialize it
    # ==========================================================================
    # Row bases for 20x4 are 0x00, 0x40, 0x14, 0x54: row 2 continues DDRAM
    # line 1 and row 3 continues line 2.

    config = DisplayConfig(bus_width=BusWidth.FOUR, lines=4, visible_columns=20)
    sim = HD44780Simulator.for_config(config)
    lcd = initialize(config, SimulatedTransport(sim, config.bus_width), delay=lambda us: None)

    print(f"Initialized {config.geometry} panel ({sim.state.function_sets} function sets)")

    # ==========================================================================
    # 2. Write text
    # ==========================================================================
    lcd.write_str("HD44780 simulator\nrow one\nrow two\nrow three")
    print("\nAfter write_str:")
    show(sim)

    # ==========================================================================
    # 3. Custom glyph
    # ==========================================================================
    heart = [0x00, 0x0A, 0x1F, 0x1F, 0x0E, 0x04, 0x00, 0x00]
    lcd.define_glyph(0, heart)
    lcd.set_cursor(3, 18)
    lcd.write_char(0)
    print(f"\nGlyph 0 in CGRAM: {sim.glyph(0).hex()}")

    # ==========================================================================
    # 4. Scroll
    # ==========================================================================
    for _ in range(3):
        lcd.shift_display(right=True)
    print("\nShifted right 3 times:")
    show(sim)
    lcd.home()

    # ==========================================================================
    # 5. Screenshot
    # ==========================================================================
    image = sim.render_image(scale=4)
    if image is None:
        print("\nInstall Pillow for screenshots: pip install Pillow")
    else:
        path = output_dir / "simulator_demo.png"
        path.write_bytes(image)
        print(f"\nSaved {path}")


if __name__ == "__main__":
    main()
