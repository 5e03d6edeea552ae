"""Entry point for ``python -m jetson_setup``."""

from jetson_setup.cli.main import main


if __name__ == "__main__":
    main()
