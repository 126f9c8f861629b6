"""Console-script entry point for ``treesync``.

click ships in the optional ``cli`` extra; without it the command exits
with an install hint instead of a traceback.
"""

import sys

MISSING_CLI_HINT = (
    "treesync: the command line needs click, which is not installed.\n"
    "Install it with:  pip install 'treesync[cli]'"
)


def main(argv=None):
    try:
        import click  # noqa: F401
    except ImportError:
        sys.exit(MISSING_CLI_HINT)
    from .cli import main as cli_main
    cli_main(args=argv, prog_name="treesync")
