"""
HD44780 Command-Line Interface
==============================

- **lcdsim**: run display operations against the chip simulator and show
  the resulting screen, bus trace, or a PNG rendering

The tool is a Click application; errors are reported through the shared
handler in hd44780.cli.errors.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

__all__ = ["lcdsim"]
