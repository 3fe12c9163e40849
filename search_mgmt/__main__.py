import sys

from search_mgmt.cli import main

sys.exit(main())
