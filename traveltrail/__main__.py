import sys

from traveltrail.app import main

sys.exit(main())
