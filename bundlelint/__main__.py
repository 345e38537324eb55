"""Entry point for python -m bundlelint."""

from bundlelint.cli.main import main

if __name__ == "__main__":
    main()
