"""fleetview CLI - entry point when run as ``python -m fleetview``."""

from fleetview.cli import main

if __name__ == "__main__":
    main()
