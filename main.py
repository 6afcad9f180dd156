#!/usr/bin/env python3
"""
main.py - quick-start entry point.

Drop images into ``images/`` and run:

    python main.py layout --input images

Or use the full CLI:

    python -m mosaic_collage.cli layout --help
    python -m mosaic_collage.cli html photo1.jpg photo2.jpg -o collage.html
"""

from mosaic_collage.cli import app

if __name__ == "__main__":
    app()
