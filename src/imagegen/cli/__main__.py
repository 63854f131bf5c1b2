"""CLI entry point for imagegen.cli module.

Enables execution via: python -m imagegen.cli
"""

from imagegen.cli.generate import main

if __name__ == "__main__":
    main()
