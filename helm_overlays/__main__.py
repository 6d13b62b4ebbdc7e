"""Allow ``python -m helm_overlays``."""

import sys

from helm_overlays.cli import main

sys.exit(main())
