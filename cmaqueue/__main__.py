"""Main entry point when executing cmaqueue as a package.

This allows running the package using python -m cmaqueue.
"""

from cmaqueue.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
