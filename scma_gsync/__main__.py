import sys

from scma_gsync.main import main

sys.exit(main())
