"""CLI entrypoint for the tracked-region overlay."""

import sys

from track_overlay.cli import main


if __name__ == "__main__":
    sys.exit(main())
