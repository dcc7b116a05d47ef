import sys

from fnpack.cli import main

sys.exit(main())
