"""Allow ``python -m stig_checklist``."""

import sys

from stig_checklist.ui.cli import main

sys.exit(main())
