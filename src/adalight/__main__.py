"""Entry point for running adalight as a module."""

import sys

from adalight.cli import main

if __name__ == "__main__":
    sys.exit(main())
