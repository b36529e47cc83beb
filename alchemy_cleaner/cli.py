from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from click import Group

    from alchemy_cleaner.config import CleanerConfig

__all__ = ("add_cleaner_commands", "get_cleaner_group")

CLI_STRATEGIES = ("truncation", "deletion")
"""Strategies usable outside a test run. A transaction would be rolled back as soon as it starts."""


def _as_config(config_instance: Any) -> "CleanerConfig":
    from sqlalchemy import Engine

    from alchemy_cleaner.config import CleanerConfig

    if isinstance(config_instance, CleanerConfig):
        return config_instance
    if isinstance(config_instance, Engine):
        return CleanerConfig(default_engine=config_instance)
    msg = f"Expected a CleanerConfig or an Engine, got {type(config_instance).__name__}"
    raise TypeError(msg)


def get_cleaner_group() -> "Group":
    """Get the Alchemy Cleaner CLI group."""
    from alchemy_cleaner.exceptions import MissingDependencyError

    try:
        import rich_click as click
    except ImportError:
        try:
            import click  # type: ignore[no-redef]
        except ImportError as e:
            raise MissingDependencyError(package="click", install_package="cli") from e

    from alchemy_cleaner.__metadata__ import __project__, __version__

    @click.group(name="cleaner")
    @click.version_option(version=__version__, prog_name=__project__)
    @click.option(
        "--config",
        help="Dotted path to a CleanerConfig or an Engine (e.g. 'myapp.testing.cleaner_config')",
        required=True,
        type=str,
    )
    @click.pass_context
    def cleaner_group(ctx: "click.Context", config: str) -> None:
        """Alchemy Cleaner CLI commands."""
        from rich import get_console

        from alchemy_cleaner.utils import module_loader

        console = get_console()
        ctx.ensure_object(dict)
        try:
            ctx.obj["config"] = _as_config(module_loader.import_string(config))
        except (ImportError, TypeError) as e:
            console.print(f"[red]Error loading config: {e}[/]")
            ctx.exit(1)

    return cleaner_group


def add_cleaner_commands(cleaner_group: Optional["Group"] = None) -> "Group":  # noqa: C901
    """Add the cleaning commands to the cleaner group."""
    from alchemy_cleaner.exceptions import MissingDependencyError

    try:
        import rich_click as click
    except ImportError:
        try:
            import click  # type: ignore[no-redef]
        except ImportError as e:
            raise MissingDependencyError(package="click", install_package="cli") from e
    from rich import get_console

    console = get_console()

    if cleaner_group is None:
        cleaner_group = get_cleaner_group()

    db_option = click.option(
        "--db",
        help="Logical database name to clean. Defaults to the default engine.",
        type=str,
        default="default",
        show_default=True,
    )
    only_option = click.option(
        "--only",
        help="Only clean this table. May be repeated.",
        type=str,
        multiple=True,
    )
    except_option = click.option(
        "--except",
        "except_",
        help="Never clean this table. May be repeated.",
        type=str,
        multiple=True,
    )
    pre_count_option = click.option(
        "--pre-count",
        help="Skip tables that were not written to since they were last reset.",
        type=bool,
        default=False,
        is_flag=True,
    )
    no_cache_tables_option = click.option(
        "--no-cache-tables",
        help="Do not cache the table list.",
        type=bool,
        default=False,
        is_flag=True,
    )

    def build_strategy(
        strategy: str,
        db: str,
        only: "tuple[str, ...]",
        except_: "tuple[str, ...]",
        pre_count: bool,
        no_cache_tables: bool,
        **options: Any,
    ) -> Any:
        from alchemy_cleaner.strategies import get_strategy_class

        ctx = click.get_current_context()
        return get_strategy_class(strategy)(
            db,
            config=ctx.obj["config"],
            only=list(only),
            except_=list(except_),
            pre_count=pre_count,
            cache_tables=not no_cache_tables,
            **options,
        )

    @cleaner_group.command(
        name="tables",
        help="List the tables a clean would affect.",
    )
    @db_option
    @only_option
    @except_option
    @pre_count_option
    @no_cache_tables_option
    def show_tables(  # pyright: ignore[reportUnusedFunction]
        db: str,
        only: "tuple[str, ...]",
        except_: "tuple[str, ...]",
        pre_count: bool,
        no_cache_tables: bool,
    ) -> None:
        """Show the tables that would be cleaned."""
        from rich.table import Table

        from alchemy_cleaner.exceptions import AlchemyCleanerError

        ctx = click.get_current_context()
        console.rule("[yellow]Listing tables to clean[/]", align="left")
        try:
            strategy = build_strategy("deletion", db, only, except_, pre_count, no_cache_tables)
            with strategy.unit_of_work() as connection:
                tables = strategy.resolver.tables(connection, pre_count=pre_count)
        except AlchemyCleanerError as e:
            console.print(f"[red]{e}[/]")
            ctx.exit(1)
        if not tables:
            console.print("[yellow]No tables to clean[/]")
            return
        table = Table(title=f"Tables of {db!r}")
        table.add_column("Table", style="cyan")
        for name in tables:
            table.add_row(name)
        console.print(table)

    @cleaner_group.command(
        name="clean",
        help="Clean the database.",
    )
    @db_option
    @click.option(
        "--strategy",
        help="Cleaning strategy.",
        type=click.Choice(CLI_STRATEGIES),
        default="truncation",
        show_default=True,
    )
    @only_option
    @except_option
    @pre_count_option
    @no_cache_tables_option
    @click.option(
        "--no-reset-ids",
        help="Keep auto-increment counters when truncating.",
        type=bool,
        default=False,
        is_flag=True,
    )
    @click.option(
        "--no-prompt",
        help="Do not prompt for confirmation before cleaning.",
        type=bool,
        default=False,
        required=False,
        show_default=True,
        is_flag=True,
    )
    def clean_database(  # pyright: ignore[reportUnusedFunction]
        db: str,
        strategy: str,
        only: "tuple[str, ...]",
        except_: "tuple[str, ...]",
        pre_count: bool,
        no_cache_tables: bool,
        no_reset_ids: bool,
        no_prompt: bool,
    ) -> None:
        """Clean the database with the selected strategy."""
        from rich.prompt import Confirm

        from alchemy_cleaner.exceptions import AlchemyCleanerError

        ctx = click.get_current_context()
        console.rule(f"[yellow]Cleaning {db!r} with the {strategy} strategy[/]", align="left")
        input_confirmed = (
            True
            if no_prompt
            else Confirm.ask(f"[bold]Are you sure you want to remove all data from the `{db}` database?[/]")
        )
        if not input_confirmed:
            return
        options = {"reset_ids": not no_reset_ids} if strategy == "truncation" else {}
        try:
            build_strategy(strategy, db, only, except_, pre_count, no_cache_tables, **options).clean()
        except AlchemyCleanerError as e:
            console.print(f"[red]{e}[/]")
            ctx.exit(1)
        console.print("[green]Database cleaned[/]")

    return cleaner_group
