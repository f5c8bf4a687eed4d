import sys

from bootstrap_lab.cli import main

sys.exit(main())
