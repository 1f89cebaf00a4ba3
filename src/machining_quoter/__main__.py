from __future__ import annotations

import sys

from machining_quoter.cli import main

if __name__ == "__main__":
    sys.exit(main())
