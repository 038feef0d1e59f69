"""Allow ``python -m teamscall``."""

from teamscall.api.cli.main import main

if __name__ == "__main__":
    main()
