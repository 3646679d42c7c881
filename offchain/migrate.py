#!/usr/bin/env python3
"""
Migration runner for the GreenWorld contracts

Runs the numbered scripts in the migrations directory (``2_deploy_contracts.py``
and so on) in order. Each script defines ``migrate(deployer, artifacts)``.
Progress is kept in the deployment record so a second run only executes
migrations added since the last one.
"""

import os
import re
import sys
import logging
import argparse
import importlib.util
from dataclasses import dataclass
from typing import Callable, List, Optional

from .artifacts import ArtifactStore
from .client import connect
from .config import Settings, setup_logging
from .deployer import Deployer, DeploymentRecord
from .errors import GreenWorldError
from .transactions import TransactionSender

logger = logging.getLogger(__name__)

MIGRATION_FILE_RE = re.compile(r"^(\d+)_(\w+)\.py$")


@dataclass
class Migration:
    number: int
    name: str
    path: str

    def load(self) -> Callable:
        module_name = f"migration_{self.number}_{self.name}"
        spec = importlib.util.spec_from_file_location(module_name, self.path)
        if spec is None or spec.loader is None:
            raise GreenWorldError(f"Cannot load migration {self.path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        migrate = getattr(module, "migrate", None)
        if not callable(migrate):
            raise GreenWorldError(f"Migration {self.path} does not define migrate(deployer, artifacts)")
        return migrate


def discover_migrations(directory: str) -> List[Migration]:
    """Numbered migration scripts in `directory`, lowest number first."""
    if not os.path.isdir(directory):
        raise GreenWorldError(f"Migrations directory not found: {directory}")

    migrations = []
    for filename in os.listdir(directory):
        match = MIGRATION_FILE_RE.match(filename)
        if match:
            migrations.append(Migration(int(match.group(1)), match.group(2), os.path.join(directory, filename)))

    migrations.sort(key=lambda m: m.number)
    for previous, current in zip(migrations, migrations[1:]):
        if previous.number == current.number:
            raise GreenWorldError(f"Duplicate migration number {current.number}: {previous.path}, {current.path}")
    return migrations


def select_migrations(migrations: List[Migration], last_completed: int = 0, reset: bool = False,
                      from_: Optional[int] = None, to: Optional[int] = None) -> List[Migration]:
    """Migrations left to run, honouring --reset, --from and --to."""
    selected = []
    for migration in migrations:
        if from_ is not None:
            if migration.number < from_:
                continue
        elif not reset and migration.number <= last_completed:
            continue
        if to is not None and migration.number > to:
            continue
        selected.append(migration)
    return selected


def run_migrations(deployer: Deployer, artifacts: ArtifactStore, migrations: List[Migration],
                   reset: bool = False, from_: Optional[int] = None, to: Optional[int] = None) -> List[Migration]:
    """
    Run pending migrations in order.

    A failing migration stops the run; migrations completed before it stay
    recorded.

    Returns:
        The migrations that ran
    """
    record = deployer.record
    if reset:
        record.reset()

    pending = select_migrations(migrations, record.last_completed_migration, reset, from_, to)
    if not pending:
        logger.info("Network up to date, no migrations to run")
        return []

    completed = []
    for migration in pending:
        logger.info(f"Running migration {migration.number}_{migration.name}")
        migrate = migration.load()
        try:
            migrate(deployer, artifacts)
        except Exception as e:
            logger.error(f"Migration {migration.number}_{migration.name} failed: {e}")
            raise
        record.complete_migration(migration.number)
        completed.append(migration)
        logger.info(f"Migration {migration.number}_{migration.name} completed")

    return completed


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Deploy the GreenWorld contracts by running the numbered migrations"
    )
    parser.add_argument("--reset", action="store_true",
                        help="Run all migrations from the beginning")
    parser.add_argument("-f", "--from", dest="from_", type=int, metavar="N",
                        help="Run migrations starting at number N")
    parser.add_argument("--to", type=int, metavar="N",
                        help="Stop after migration number N")
    parser.add_argument("--dry-run", action="store_true",
                        help="Only list the migrations that would run")
    parser.add_argument("--rpc-url", help="RPC endpoint (default: RPC_URL)")
    parser.add_argument("--migrations-dir", help="Migrations directory (default: MIGRATIONS_DIR)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings.from_env().override(rpc_url=args.rpc_url, migrations_dir=args.migrations_dir)
    except GreenWorldError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    setup_logging(settings.log_file)

    try:
        migrations = discover_migrations(settings.migrations_dir)

        if args.dry_run:
            record = DeploymentRecord.load(settings.deployment_file, settings.chain_id)
            last_completed = 0 if args.reset else record.last_completed_migration
            for migration in select_migrations(migrations, last_completed, args.reset, args.from_, args.to):
                logger.info(f"Would run {migration.number}_{migration.name}")
            return 0

        w3 = connect(settings.rpc_url)
        # the record belongs to the chain the node is on, not to CHAIN_ID
        network = settings.resolve_chain_id(w3.eth.chain_id)
        record = DeploymentRecord.load(settings.deployment_file, network)
        sender = TransactionSender(w3, settings.private_key, network,
                                   settings.gas_limit, settings.tx_timeout)
        deployer = Deployer(w3, sender, record)
        artifacts = ArtifactStore(settings.artifacts_dir)

        run_migrations(deployer, artifacts, migrations, args.reset, args.from_, args.to)
    except Exception as e:
        logger.error(f"Migration run failed: {e}")
        return 1

    for name, address in deployer.deployments.items():
        logger.info(f"{name}: {address}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
