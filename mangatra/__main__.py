import sys

from mangatra.cli import main

sys.exit(main())
