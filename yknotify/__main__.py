"""Allow running as ``python -m yknotify``."""

from .cli import main

raise SystemExit(main())
