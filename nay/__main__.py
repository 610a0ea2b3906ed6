import sys

from nay.cli import main

sys.exit(main())
