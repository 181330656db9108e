import sys

from ordvault.cli import main

sys.exit(main())
