import sys

from i18n_keyguard.cli import main

if __name__ == "__main__":  # pragma: no cover - CLI passthrough
    sys.exit(main())
