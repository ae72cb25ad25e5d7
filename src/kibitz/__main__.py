import sys

from kibitz.app import main

sys.exit(main())
