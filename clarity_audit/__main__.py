"""Allow ``python -m clarity_audit``."""

from clarity_audit.main import main

raise SystemExit(main())
