# sbuild/__main__.py
import sys

from sbuild.modules.cli import main

sys.exit(main())
