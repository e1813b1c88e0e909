#!/usr/bin/env python3
import sys

from config import Config
from database.asset_storage import get_asset_storage, reference_for
from database.movie_store import MovieStore


def prune_uploads(store=None, dry_run=False):
    """
    Remove uploaded images that no movie references

    Returns:
        list: filenames that were (or, with dry_run, would be) removed
    """
    if store is None:
        store = MovieStore(
            Config.DATA_FILE,
            assets=get_asset_storage(Config),
            max_opinions=Config.MAX_OPINIONS
        )

    referenced = store.referenced_assets()
    orphans = [
        filename for filename in store.assets.list_filenames()
        if reference_for(filename) not in referenced
    ]

    print(f"Found {len(orphans)} unreferenced upload(s) ({store.assets.backend} backend)")

    for filename in orphans:
        if dry_run:
            print(f"  would remove {filename}")
            continue
        store.assets.delete(reference_for(filename))
        print(f"  removed {filename}")

    return orphans


if __name__ == '__main__':
    prune_uploads(dry_run='--dry-run' in sys.argv[1:])
