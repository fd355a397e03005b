import sys

from smartbuild.modules.cli import main

sys.exit(main())
