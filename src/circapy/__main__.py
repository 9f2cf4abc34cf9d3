"""Main function for circapy."""

from circapy.core import cli


def run_main() -> None:
    """Main entry point to circapy."""
    cli.app()


if __name__ == "__main__":
    cli.app()
