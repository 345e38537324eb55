#!/usr/bin/env python3
"""Entry point for the bundlelint CLI when run as python -m bundlelint.cli."""

if __name__ == "__main__":
    from bundlelint.cli.main import main

    main()
