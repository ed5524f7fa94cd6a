import sys

from clusterjob.presentation.cli import main

sys.exit(main())
