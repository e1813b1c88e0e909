import io
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from werkzeug.datastructures import FileStorage

from database.asset_storage import LocalAssetStorage
from database.movie_store import MovieStore


def make_upload(filename='poster.png', content_type='image/png', data=b'\x89PNG fake image'):
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)


@pytest.fixture
def upload_folder(tmp_path):
    return str(tmp_path / 'uploads')


@pytest.fixture
def data_file(tmp_path):
    return str(tmp_path / 'data' / 'movies.json')


@pytest.fixture
def assets(upload_folder):
    return LocalAssetStorage(upload_folder)


@pytest.fixture
def store(data_file, assets):
    return MovieStore(data_file, assets=assets)


@pytest.fixture
def client(data_file, upload_folder):
    from app import app

    app.config.update(
        TESTING=True,
        DATA_FILE=data_file,
        UPLOAD_FOLDER=upload_folder,
        ASSET_BACKEND='local',
        MAX_OPINIONS=3,
        MAX_CONTENT_LENGTH=5 * 1024 * 1024
    )
    app.extensions.pop('movie_store', None)

    with app.test_client() as test_client:
        yield test_client

    app.extensions.pop('movie_store', None)
