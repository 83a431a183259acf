import sys

from stockledger.main import main

sys.exit(main())
