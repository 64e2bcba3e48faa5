import sys

from gmbt.cli import main

sys.exit(main())
