import sys

from coastal_places.app import main

sys.exit(main())
