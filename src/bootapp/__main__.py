"""Entry point for ``python -m bootapp``."""

from bootapp.cli.main import main


if __name__ == "__main__":
    main()
