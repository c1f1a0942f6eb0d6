import sys

from ruler_sync.cli import main


sys.exit(main())
