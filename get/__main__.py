"""Entry point for running get as a module.

This module allows get to be run as a Python module using the -m flag:
    python -m get
"""

from . import cli

if __name__ == "__main__":
    cli._main()
