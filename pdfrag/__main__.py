import sys

from pdfrag.cli import main

sys.exit(main())
