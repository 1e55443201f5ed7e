"""Allow ``python -m vnext_sync``."""

from vnext_sync.cli.app import main

main()
