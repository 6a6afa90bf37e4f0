"""Allow ``python -m slide_toolbox``."""

import sys

from slide_toolbox.cli import main

sys.exit(main())
