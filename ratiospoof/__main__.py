"""Allow ``python -m ratiospoof``."""

from ratiospoof.cli.main import main

if __name__ == "__main__":
    main()
