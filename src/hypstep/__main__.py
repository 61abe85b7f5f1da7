"""Main entry point for running hypstep as a module."""

import sys

if __name__ == "__main__":
    from hypstep.cli.app import main
    sys.exit(main())
