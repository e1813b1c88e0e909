import os

from conftest import make_upload
from prune_uploads import prune_uploads


def test_prune_removes_only_orphans(store, assets, upload_folder):
    kept = assets.save(make_upload('kept.png'))
    orphan = assets.save(make_upload('orphan.png'))
    store.create_movie({'name': 'Dune'}, kept)

    removed = prune_uploads(store)

    assert removed == [os.path.basename(orphan)]
    assert os.listdir(upload_folder) == [os.path.basename(kept)]


def test_prune_dry_run_keeps_files(store, assets, upload_folder):
    orphan = assets.save(make_upload())

    removed = prune_uploads(store, dry_run=True)

    assert removed == [os.path.basename(orphan)]
    assert os.listdir(upload_folder) == [os.path.basename(orphan)]


def test_prune_without_uploads(store):
    assert prune_uploads(store) == []
