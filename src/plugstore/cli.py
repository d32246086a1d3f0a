# src/plugstore/cli.py

import argparse
import asyncio
import sys
from typing import Any, Awaitable, Callable, List, Optional

from plugstore import log_utils
from plugstore.config import StoreConfig, get_default_log_dir, load_config
from plugstore.constants import SOURCE_GITHUB, SOURCE_GITLAB, SUPPORTED_MANAGERS
from plugstore.database import DatabaseFacade, Repository
from plugstore.exceptions import PlugstoreError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plugstore",
        description="Fetch and cache the plugin catalogue, READMEs and install catalogues.",
    )
    parser.add_argument(
        "--log-level",
        help="Override the configured log level (DEBUG, INFO, WARNING, ...)",
    )
    parser.add_argument("--config", help="Path to an alternative plugstore.yaml")
    subparsers = parser.add_subparsers(dest="command")

    fetch_parser = subparsers.add_parser("fetch", help="Load the repository index")
    fetch_parser.add_argument(
        "--force", action="store_true", help="Ignore cached copies"
    )

    readme_parser = subparsers.add_parser(
        "readme", help="Print the processed README of a repository"
    )
    readme_parser.add_argument("full_name", help="Repository as owner/repo")
    readme_parser.add_argument(
        "--source", choices=[SOURCE_GITHUB, SOURCE_GITLAB], default=SOURCE_GITHUB
    )
    readme_parser.add_argument("--ref", help="README location as branch/path")
    readme_parser.add_argument(
        "--force", action="store_true", help="Ignore cached copies"
    )

    catalogue_parser = subparsers.add_parser(
        "catalogue", help="Load the install catalogue of a plugin manager"
    )
    catalogue_parser.add_argument("manager", choices=list(SUPPORTED_MANAGERS))
    catalogue_parser.add_argument(
        "--force", action="store_true", help="Ignore cached copies"
    )

    subparsers.add_parser("installed", help="List plugins from the lock file")
    subparsers.add_parser("clear", help="Delete all cached data")
    return parser


def _configure_logging(config: StoreConfig, level_override: Optional[str]) -> None:
    log_utils.set_log_level(level_override or config.log_level)
    if config.log_file:
        log_utils.add_file_logging(get_default_log_dir(), level_override or config.log_level)


async def _with_facade(
    config: StoreConfig, action: Callable[[DatabaseFacade], Awaitable[Any]]
) -> Any:
    async with DatabaseFacade(config) as facade:
        return await action(facade)


def _run_fetch(config: StoreConfig, force: bool) -> None:
    database = asyncio.run(
        _with_facade(config, lambda f: f.fetch_database(force_refresh=force))
    )
    meta = database.meta
    log_utils.logger.info(f"Repositories: {len(database.items)}")
    if "installable_count" in meta:
        log_utils.logger.info(f"Installable: {meta['installable_count']}")


def _run_readme(config: StoreConfig, args: argparse.Namespace) -> None:
    record = {"full_name": args.full_name, "source": args.source}
    if args.ref:
        record["readme"] = args.ref
    repo = Repository.from_dict(record)
    lines = asyncio.run(
        _with_facade(config, lambda f: f.get_readme(repo, force_refresh=args.force))
    )
    for line in lines:
        print(line)


def _run_catalogue(config: StoreConfig, manager: str, force: bool) -> None:
    catalogue = asyncio.run(
        _with_facade(
            config,
            lambda f: f.fetch_install_catalogue(manager, force_refresh=force),
        )
    )
    size = len(catalogue) if hasattr(catalogue, "__len__") else 0
    log_utils.logger.info(f"{manager} install catalogue: {size} entries")


def _run_installed(config: StoreConfig) -> None:
    installed = DatabaseFacade(config).get_installed_plugins()
    for name in sorted(installed):
        print(name)
    log_utils.logger.info(f"{len(installed)} installed plugins")


def _run_clear(config: StoreConfig) -> int:
    error = DatabaseFacade(config).clear_all_caches()
    if error:
        log_utils.logger.error(f"Failed to clear caches: {error}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point of the `plugstore` console script.

    Returns:
        int: Process exit status; 1 when an operation reported an error.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
        _configure_logging(config, args.log_level)

        if args.command == "fetch":
            _run_fetch(config, args.force)
        elif args.command == "readme":
            _run_readme(config, args)
        elif args.command == "catalogue":
            _run_catalogue(config, args.manager, args.force)
        elif args.command == "installed":
            _run_installed(config)
        elif args.command == "clear":
            return _run_clear(config)
    except PlugstoreError as e:
        log_utils.logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
