"""CLI commands for the mastery engine.

Commands:
- init-db: Create the SQLite schema
- seed: Load concepts and tasks from a YAML seed file
- update: Record a pass/fail attempt for one or more concepts
- progress: Show a learner's mastery per concept
- next: Pick the next task for a learner
- tasks: List the task catalog
- serve: Run the Web API
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from mastery.config.app_config import AppConfig, ConfigError, load_app_config
from mastery.core.catalog import SeedError, TaskCatalog
from mastery.core.concept_resolver import ConceptResolver
from mastery.core.mastery_updater import MasteryUpdater
from mastery.core.task_selector import Strategy, TaskSelector
from mastery.db.database import Database, StoreUnavailableError
from mastery.utils.validators import InvalidInputError, NotFoundError

app = typer.Typer(
    name="mastery",
    help="Per-concept mastery scoring and next-task selection.",
    no_args_is_help=True,
)

console = Console()


def _load_config_or_exit() -> AppConfig:
    try:
        return load_app_config()
    except ConfigError as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1)


def _open_database(config: AppConfig, db_path: Path | None) -> Database:
    """Open the configured database (or db_path), exiting on failure."""
    database = Database(
        db_path or Path(config.storage.db_path),
        busy_timeout=config.storage.busy_timeout,
    )
    try:
        database.open()
    except StoreUnavailableError as e:
        console.print(f"[red]✗ Database unavailable: {e}[/red]")
        raise typer.Exit(code=1)
    return database


DbOption = typer.Option(None, "--db", help="Database file (default from config)")


@app.command(name="init-db")
def init_db(db_path: Optional[Path] = DbOption) -> None:
    """Create the database schema."""
    config = _load_config_or_exit()
    database = _open_database(config, db_path)
    console.print(f"[green]✓ Database ready:[/green] {database.db_path}")
    database.close()


@app.command()
def seed(
    seed_file: Path = typer.Argument(..., help="YAML file with concepts and tasks"),
    db_path: Optional[Path] = DbOption,
) -> None:
    """Load concepts and tasks from a seed file. Existing rows are kept."""
    config = _load_config_or_exit()
    database = _open_database(config, db_path)
    catalog = TaskCatalog(database, ConceptResolver(database, config.concepts))

    try:
        result = catalog.load_seed(seed_file)
    except SeedError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    except StoreUnavailableError as e:
        console.print(f"[red]✗ Database unavailable: {e}[/red]")
        raise typer.Exit(code=1)
    finally:
        database.close()

    console.print(
        f"[green]✓ Seed loaded:[/green] {result.concepts_created} concepts, "
        f"{result.tasks_created} tasks created, {result.tasks_skipped} already present"
    )


@app.command()
def update(
    learner_id: str = typer.Argument(..., help="Learner identifier"),
    tags: list[str] = typer.Option(..., "--tag", "-t", help="Concept tag (repeatable)"),
    result: str = typer.Option(..., "--result", "-r", help="pass or fail"),
    task_id: Optional[str] = typer.Option(None, "--task", help="Catalog task attempted"),
    db_path: Optional[Path] = DbOption,
) -> None:
    """Record a pass/fail attempt for the given concepts."""
    config = _load_config_or_exit()
    database = _open_database(config, db_path)
    updater = MasteryUpdater(database, ConceptResolver(database, config.concepts), config.rating)

    try:
        report = updater.apply(learner_id, tags, result, task_id=task_id)
    except (InvalidInputError, NotFoundError, StoreUnavailableError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    finally:
        database.close()

    for u in report.updates:
        color = "green" if u.change >= 0 else "yellow"
        console.print(
            f"  {u.concept}: {u.old_mastery:.0f} → {u.new_mastery:.0f} "
            f"[{color}]({u.change:+.0f})[/{color}]"
        )
    for f in report.failures:
        console.print(f"  [red]✗ {f.concept}: {f.reason}[/red]")

    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def progress(
    learner_id: str = typer.Argument(..., help="Learner identifier"),
    db_path: Optional[Path] = DbOption,
) -> None:
    """Show a learner's mastery per concept."""
    config = _load_config_or_exit()
    database = _open_database(config, db_path)
    updater = MasteryUpdater(database, ConceptResolver(database, config.concepts), config.rating)

    try:
        records = updater.progress(learner_id)
    except (InvalidInputError, StoreUnavailableError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    finally:
        database.close()

    if not records:
        console.print(f"[yellow]No mastery recorded for '{learner_id}'[/yellow]")
        return

    table = Table(title=f"Mastery: {learner_id}")
    table.add_column("Concept")
    table.add_column("Mastery", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Successes", justify="right")
    table.add_column("Success %", justify="right")
    for r in records:
        table.add_row(
            r.concept_name,
            f"{r.mastery:.0f}",
            str(r.attempts),
            str(r.successes),
            r.success_rate,
        )
    console.print(table)


@app.command(name="next")
def next_task(
    learner_id: str = typer.Argument(..., help="Learner identifier"),
    strategy: str = typer.Option(
        Strategy.SEQUENTIAL.value, "--strategy", "-s", help="just-right or sequential"
    ),
    db_path: Optional[Path] = DbOption,
) -> None:
    """Pick the next task for a learner."""
    config = _load_config_or_exit()
    database = _open_database(config, db_path)
    selector = TaskSelector(database, config.rating, config.selector)

    try:
        task = selector.select(learner_id, strategy)
    except (InvalidInputError, StoreUnavailableError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    finally:
        database.close()

    if task is None:
        console.print("[yellow]No eligible task: catalog empty or everything passed[/yellow]")
        return

    console.print(f"[green]→ {task.id}[/green] {task.title} (difficulty {task.difficulty})")
    if task.concepts:
        console.print(f"  Concepts: {', '.join(task.concepts)}")


@app.command()
def tasks(
    difficulty: Optional[int] = typer.Option(None, "--difficulty", "-d", help="Tier 1-5"),
    concept: Optional[str] = typer.Option(None, "--concept", "-c", help="Concept name"),
    db_path: Optional[Path] = DbOption,
) -> None:
    """List the task catalog, easiest first."""
    config = _load_config_or_exit()
    database = _open_database(config, db_path)
    try:
        found = TaskCatalog(database).find(difficulty=difficulty, concept=concept)
    except StoreUnavailableError as e:
        console.print(f"[red]✗ Database unavailable: {e}[/red]")
        raise typer.Exit(code=1)
    finally:
        database.close()

    if not found:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(title="Tasks")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Difficulty", justify="right")
    table.add_column("Concepts")
    for t in found:
        table.add_row(t.id, t.title, str(t.difficulty), ", ".join(t.concepts))
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
) -> None:
    """Run the Web API with uvicorn."""
    import uvicorn

    uvicorn.run("mastery.web.api:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
