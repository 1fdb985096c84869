"""CLI entry point for vidscene."""

from .cli.app import cli

if __name__ == '__main__':
    cli()
