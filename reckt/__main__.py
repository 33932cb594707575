"""
Allow running reckt as a module:

    python3 -m reckt <target> [options]

Delegates to reckt.cli:main().
"""
import sys
from .cli import main

sys.exit(main())
