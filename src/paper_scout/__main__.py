"""Allow ``python -m paper_scout``."""

import sys

from paper_scout.cli import main

if __name__ == "__main__":
    sys.exit(main())
