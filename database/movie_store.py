"""Movie catalog persisted as a single JSON document.

Every operation reads the whole file, changes the list in memory and
writes the whole list back (temp file + rename). The read-modify-write
cycle runs under one lock, so request threads of the same process can
not lose each other's updates. Separate processes writing the same file
still race; the last write wins.
"""
import json
import logging
import math
import os
import threading
import uuid
from contextlib import contextmanager

from database.errors import MovieNotFound, OpinionLimitReached, StorageError
from database.asset_storage import is_managed

logger = logging.getLogger(__name__)

MOVIE_FIELDS = ('name', 'description', 'date')

# Hard cap on opinions per movie; configuration may only lower it
OPINION_LIMIT = 3


def new_id():
    return uuid.uuid4().hex


def parse_rating(value):
    """Number for numeric input, None for anything else"""
    if value is None or isinstance(value, bool):
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rating):
        return None
    return rating


class MovieStore:

    def __init__(self, data_file, assets=None, max_opinions=OPINION_LIMIT):
        if not 1 <= max_opinions <= OPINION_LIMIT:
            raise ValueError(f"max_opinions must be between 1 and {OPINION_LIMIT}, got {max_opinions}")

        self.data_file = data_file
        self.assets = assets
        self.max_opinions = max_opinions
        self._lock = threading.Lock()

        with self._lock:
            self._ensure_file()

    def _ensure_file(self):
        if os.path.exists(self.data_file):
            return
        directory = os.path.dirname(self.data_file)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise StorageError(f'Failed to create data directory: {e}') from e
        self._write([])
        logger.info(f"Created empty catalog at {self.data_file}")

    def _read(self):
        self._ensure_file()
        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                movies = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read catalog {self.data_file}: {e}")
            raise StorageError(f'Failed to read catalog: {e}') from e

        if not isinstance(movies, list):
            raise StorageError('Catalog file does not contain a list of movies')
        for position, movie in enumerate(movies):
            if not isinstance(movie, dict) or not isinstance(movie.get('opinions', []), list):
                raise StorageError(f'Catalog entry {position} is not a movie record')
        return movies

    def _write(self, movies):
        tmp_file = f"{self.data_file}.tmp"
        try:
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(movies, f, ensure_ascii=False, indent=2)
            os.replace(tmp_file, self.data_file)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write catalog {self.data_file}: {e}")
            raise StorageError(f'Failed to write catalog: {e}') from e

    @contextmanager
    def _transaction(self):
        # Nothing is written when the block raises
        with self._lock:
            movies = self._read()
            yield movies
            self._write(movies)

    @staticmethod
    def _index_of(movies, movie_id):
        for index, movie in enumerate(movies):
            if movie.get('id') == movie_id:
                return index
        raise MovieNotFound(movie_id)

    def _discard_asset(self, reference):
        if self.assets is None or not is_managed(reference):
            return
        try:
            self.assets.delete(reference)
        except StorageError as e:
            logger.warning(f"Could not remove asset {reference}: {e}")

    def list_movies(self):
        with self._lock:
            return self._read()

    def count(self):
        return len(self.list_movies())

    def referenced_assets(self):
        return {
            movie['image'] for movie in self.list_movies()
            if is_managed(movie.get('image'))
        }

    def get_movie(self, movie_id):
        movies = self.list_movies()
        return movies[self._index_of(movies, movie_id)]

    def create_movie(self, fields, image=None):
        with self._transaction() as movies:
            existing = {movie.get('id') for movie in movies}
            movie_id = new_id()
            while movie_id in existing:
                movie_id = new_id()

            movie = {
                'id': movie_id,
                'name': fields.get('name'),
                'description': fields.get('description'),
                'date': fields.get('date'),
                'rating': parse_rating(fields.get('rating')),
                'image': image,
                'opinions': []
            }
            movies.append(movie)

        logger.info(f"Created movie {movie_id} ({movie['name']})")
        return movie

    def update_movie(self, movie_id, fields, image=None):
        """
        Merge fields over a stored movie.

        Keys that are missing or None keep their stored value; any other
        value, empty strings and 0 included, replaces it.

        Args:
            movie_id: id of the movie
            fields: dict with any of name, description, date, rating
            image: new asset reference, replaces (and removes) the old one
        """
        with self._transaction() as movies:
            movie = movies[self._index_of(movies, movie_id)]

            for key in MOVIE_FIELDS:
                if fields.get(key) is not None:
                    movie[key] = fields[key]
            if fields.get('rating') is not None:
                movie['rating'] = parse_rating(fields['rating'])

            old_image = movie.get('image')
            if image:
                movie['image'] = image

        if image and old_image and old_image != image:
            self._discard_asset(old_image)

        logger.info(f"Updated movie {movie_id}")
        return movie

    def delete_movie(self, movie_id):
        with self._transaction() as movies:
            movie = movies.pop(self._index_of(movies, movie_id))

        self._discard_asset(movie.get('image'))

        logger.info(f"Deleted movie {movie_id}")
        return {'message': 'Movie deleted successfully'}

    def add_opinion(self, movie_id, fields):
        with self._transaction() as movies:
            movie = movies[self._index_of(movies, movie_id)]
            opinions = movie.setdefault('opinions', [])

            if len(opinions) >= self.max_opinions:
                logger.info(f"Rejected opinion for movie {movie_id}: limit of {self.max_opinions} reached")
                raise OpinionLimitReached(movie_id, self.max_opinions)

            opinion = {
                'id': new_id(),
                'user': fields.get('user'),
                'rating': parse_rating(fields.get('rating')),
                'comment': fields.get('comment')
            }
            opinions.append(opinion)

        logger.info(f"Added opinion {opinion['id']} to movie {movie_id}")
        return opinion
