"""Allow ``python -m globalfood.cli`` execution."""

import sys

from globalfood.cli.search import main

sys.exit(main())
