"""Allow running as `python -m tallies`."""

import sys

from tallies.tallies import main

sys.exit(main())
