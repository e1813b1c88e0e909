"""Errors raised by the catalog store and asset storage"""


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class MovieNotFound(CatalogError):
    status_code = 404

    def __init__(self, movie_id):
        super().__init__('Movie not found')
        self.movie_id = movie_id


class OpinionLimitReached(CatalogError):
    status_code = 400

    def __init__(self, movie_id, limit):
        super().__init__(f'This movie already has {limit} opinions')
        self.movie_id = movie_id
        self.limit = limit


class InvalidImage(CatalogError):
    status_code = 400


class StorageError(CatalogError):
    status_code = 500
