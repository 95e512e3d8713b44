"""Allow ``python -m spackle``."""

import sys

from spackle.cli import main

sys.exit(main())
