"""Entry point for ``python -m timetravel_press.cli``."""

from .app import main

if __name__ == "__main__":
    main()
