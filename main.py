#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

    python main.py build photo.jpg tiles/ -o mosaic.png

Or use the full CLI:

    python -m tile_mosaic.cli build --help
    python -m tile_mosaic.cli tiles tiles/ dump/ --rotate
"""

from tile_mosaic.cli import app

if __name__ == "__main__":
    app()
