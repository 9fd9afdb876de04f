import sys

from timething.main import main

sys.exit(main())
