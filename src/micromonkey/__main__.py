"""Allow ``python -m micromonkey``."""

import sys

from .repl import main

sys.exit(main())
