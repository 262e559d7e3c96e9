"""اجرای CLI با ``python -m anbaryar``."""

from anbaryar.infra.cli import main

raise SystemExit(main())
