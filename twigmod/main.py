# twigmod/main.py
"""Main entry point for the twigmod CLI application."""

from twigmod.cli.interface import main_cli_group


def entrypoint():
    """Function to be called by the script defined in pyproject.toml."""
    main_cli_group(prog_name="twigmod")

if __name__ == '__main__':
    entrypoint()
