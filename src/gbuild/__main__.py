"""Allow running gbuild as `python -m gbuild`."""

import sys

from gbuild.cli import main

sys.exit(main())
