"""
Package entry point.

Allows running the application via:

    python -m profplanner

This simply forwards execution to profplanner.cli.main().
"""

from profplanner.cli import main

if __name__ == "__main__":
    main()
