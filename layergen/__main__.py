# File: layergen/__main__.py
"""
LayerGen - Module entry point.

Allows running the generator directly via::

    python -m layergen generate blog posts --fields-file posts.yaml

This module simply delegates to the CLI entry point defined in ``layergen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from layergen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
