import sys

from sklad_sync.cli import main

sys.exit(main())
