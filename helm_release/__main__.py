"""
Entry point for python -m helm_release

Allows running the package as a module:
    python -m helm_release
"""

import sys

from .cli import main

if __name__ == '__main__':
    sys.exit(main())
