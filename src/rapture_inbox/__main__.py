import sys

from rapture_inbox.cli import main

sys.exit(main())
