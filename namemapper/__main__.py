import sys

from namemapper.cli import main

sys.exit(main())
