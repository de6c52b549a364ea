import sys
import typer
from pathlib import Path
from sqlalchemy import text
from sessionscope.config import settings
from sessionscope.logging import configure_logging, logger, get_run_id

app = typer.Typer(no_args_is_help=True)

@app.callback()
def main():
    """
    sessionscope CLI.
    """
    configure_logging()

@app.command(name="doctor")
def doctor():
    """
    Check configuration and that every backend opens a working session.
    """
    from sessionscope.infra.db.backend import build_registry, dispose_all
    from sessionscope.uow import UnitOfWork, UnitOfWorkDescriptor

    logger.info("Running doctor check...")

    failures: list[str] = []
    passed = 0

    print("\n🩺 sessionscope doctor\n")

    # ── Check 1: Environment / Interpreter ──────────────────────────────────
    print("[Environment]")
    print(f"  Python: {sys.version.split()[0]}")
    print(f"  Run ID: {get_run_id()}")
    passed += 1

    # ── Check 2: Configuration ───────────────────────────────────────────────
    print("\n[Configuration]")
    print(f"  DATABASE_URL:    {settings.DATABASE_URL}")
    print(f"  EXTRA_BACKENDS:  {', '.join(settings.EXTRA_BACKENDS) or '(none)'}")
    print(f"  LOG_LEVEL:       {settings.LOG_LEVEL}")

    # ── Check 3: SQLite data directory ───────────────────────────────────────
    if settings.DATABASE_URL.startswith("sqlite:///"):
        db_dir = Path(settings.DATABASE_URL.removeprefix("sqlite:///")).parent
        if db_dir.is_dir():
            print(f"  {db_dir}/ ✅ Found")
            passed += 1
        else:
            print(f"  {db_dir}/ ❌ Missing")
            failures.append(f"{db_dir}/ not found — run `mkdir {db_dir}`")

    # ── Check 4: One read-only session per backend ───────────────────────────
    print("\n[Backends]")
    registry = build_registry()
    try:
        for name in registry.names:
            try:
                with UnitOfWork(registry, [UnitOfWorkDescriptor(backend=name, read_only=True)]) as uow:
                    uow.session.exec(text("SELECT 1"))
                print(f"  {name:<16} ✅ Session opened")
                passed += 1
            except Exception as e:
                print(f"  {name:<16} ❌ {e}")
                failures.append(f"backend {name!r} is unreachable: {e}")
    finally:
        dispose_all(registry)

    # ── Summary ──────────────────────────────────────────────────────────────
    total = passed + len(failures)
    print(f"\n{'─' * 50}")
    if failures:
        print(f"Result: {passed}/{total} checks passed\n")
        for msg in failures:
            print(f"  ❌ {msg}")
        print()
        raise typer.Exit(code=1)
    else:
        print(f"Result: {passed}/{total} checks passed — all good ✅")
        print()


db_app = typer.Typer(help="Database management commands.")
app.add_typer(db_app, name="db")

@db_app.command("init")
def init():
    """Create tables on every configured backend."""
    from sessionscope.infra.db.backend import build_registry, dispose_all, init_db
    registry = build_registry()
    try:
        init_db(registry)
        logger.info("Database initialized successfully.")
        print("✅ Database initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)
    finally:
        dispose_all(registry)

people_app = typer.Typer(help="Inspect the people table.")
app.add_typer(people_app, name="people")

@people_app.command("list")
def people_list():
    """List people through the unit-of-work aware PeopleService."""
    from sessionscope.infra.db.backend import build_registry, dispose_all
    from sessionscope.services.people_service import PeopleService
    from sessionscope.uow import UnitOfWorkAwareProxyFactory

    registry = build_registry()
    try:
        people = UnitOfWorkAwareProxyFactory(registry).create(PeopleService).list_people()
    finally:
        dispose_all(registry)

    if not people.items:
        print("No people found.")
        return

    print(f"Found {people.total} people:")
    for p in people.items:
        print(f"{p.id}. {p.full_name} — {p.job_title} (born {p.year_born})")

if __name__ == "__main__":
    app()
