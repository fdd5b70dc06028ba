import sys

from dilution_radar.cli import main

sys.exit(main())
