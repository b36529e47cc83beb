from alchemy_cleaner.cli import add_cleaner_commands as build_cli_interface


def run_cli() -> None:  # pragma: no cover
    """Alchemy Cleaner CLI"""
    build_cli_interface()()


if __name__ == "__main__":  # pragma: no cover
    run_cli()
