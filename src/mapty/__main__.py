"""Entry point for running mapty as a module.

Usage:
    python -m mapty [command] [options]
"""

from mapty.cli import main

if __name__ == "__main__":
    main()
