"""Allow running as ``python -m recompress``."""

from recompress.cli import main

if __name__ == "__main__":
    main()
