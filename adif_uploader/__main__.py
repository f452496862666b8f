import sys

from adif_uploader.cli import main

sys.exit(main())
