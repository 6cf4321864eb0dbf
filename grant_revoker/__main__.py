import sys

from grant_revoker.cli import main


sys.exit(main())
