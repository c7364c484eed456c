"""Entry point for ``python -m id_generator``."""

import sys

from id_generator.cli import main

if __name__ == "__main__":
    sys.exit(main())
