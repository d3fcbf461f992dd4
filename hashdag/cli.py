import logging
import sys
from typing import Optional

import click

from hashdag import dump_jsonable, load_jsonable
from hashdag.builder import Builder, DagConfig
from hashdag.files.directory import ListingCollector, path_node
from hashdag.files.ignore_file import DEFAULT_IGNORE_POLICY, INCLUSIVE_POLICY
from hashdag.hashing import HASH_ALGOS
from hashdag.store import DagError, DirectoryStore, KVStore, MemoryStore

log = logging.getLogger(__name__)


@click.group()
def main() -> None:
    """Content addressed Merkle DAG out of files and directories."""
    pass


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--store", "store_dir", type=click.Path(), help="Directory to keep objects in")
@click.option("--block-size", type=int, help="Chunk size for large files")
@click.option("--algo", type=click.Choice(sorted(HASH_ALGOS)), help="Hash algorithm")
@click.option("--config", "config_file", type=click.Path(exists=True), help="DagConfig json")
@click.option("--listing", "listing_file", type=click.Path(), help="Write json listing of added entries")
@click.option("--no-ignore", is_flag=True, help="Do not apply ignore rules")
@click.option("--follow-symlinks", is_flag=True, help="Add targets of symlinks")
@click.option("--hex", "as_hex", is_flag=True, help="Print root digest in hex")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def add(
    path: str,
    store_dir: Optional[str],
    block_size: Optional[int],
    algo: Optional[str],
    config_file: Optional[str],
    listing_file: Optional[str],
    no_ignore: bool,
    follow_symlinks: bool,
    as_hex: bool,
    verbose: bool,
) -> None:
    """Add PATH into store and print cake of the root."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        config = DagConfig() if config_file is None else load_jsonable(config_file, DagConfig)
        overrides = {}
        if block_size is not None:
            overrides["block_size"] = block_size
        if algo is not None:
            overrides["hash_algo"] = algo
        if overrides:
            config = DagConfig(config.__to_json__(), **overrides)
    except (ValueError, AttributeError) as e:
        raise click.BadParameter(str(e))

    policy = INCLUSIVE_POLICY if no_ignore else DEFAULT_IGNORE_POLICY
    rules = policy.apply(path, ignore_symlinks=not follow_symlinks)

    store: KVStore = MemoryStore() if store_dir is None else DirectoryStore(store_dir)
    collector = ListingCollector()
    builder = Builder(store, config=config, on_added=collector)
    try:
        cake = builder.add(path_node(path, rules))
    except DagError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if listing_file is not None:
        dump_jsonable(listing_file, collector.root)
        log.info("listing written to %s", listing_file)
    click.echo(cake.hex() if as_hex else str(cake))


if __name__ == "__main__":
    main()
