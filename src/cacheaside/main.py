"""Main entry point for the cacheaside CLI.

Usage:
    python -m cacheaside.main --help
    cacheaside --help  # If installed via pip/uv
"""

from cacheaside.cli import main

if __name__ == "__main__":
    main()
