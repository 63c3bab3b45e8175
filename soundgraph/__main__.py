import sys

from soundgraph.cli import main

sys.exit(main())
