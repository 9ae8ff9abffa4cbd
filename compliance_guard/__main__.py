import sys

from compliance_guard.cli import main

sys.exit(main())
