from flask import Flask, jsonify, request, render_template, Response
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge
from config import Config
import logging
import threading

from services.storage_check import check_storage
from services.s3_check import check_s3

from database.errors import CatalogError, OpinionLimitReached
from database.movie_store import MovieStore
from database.asset_storage import get_asset_storage

from metrics import (
    metrics_endpoint, track_request,
    MOVIE_COUNT, MOVIES_CREATED, MOVIES_DELETED,
    OPINIONS_ADDED, OPINION_LIMIT_REJECTIONS
)

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


app = Flask(__name__)
app.config.from_object(Config)
CORS(app, resources={r'/api/*': {'origins': Config.CORS_ORIGINS}})

MOVIE_FORM_FIELDS = ('name', 'description', 'date', 'rating')

_store_lock = threading.Lock()


def get_store():
    """Catalog store for the current app config, built on first use"""
    with _store_lock:
        store = app.extensions.get('movie_store')
        if store is None:
            store = MovieStore(
                app.config['DATA_FILE'],
                assets=get_asset_storage(app.config),
                max_opinions=app.config['MAX_OPINIONS']
            )
            app.extensions['movie_store'] = store
            logger.info(
                f"Catalog store ready: {app.config['DATA_FILE']} "
                f"(assets: {store.assets.backend})"
            )
        return store


def movie_fields_from_form(form, partial=False):
    fields = {key: form[key] for key in MOVIE_FORM_FIELDS if key in form}

    # An empty rating in an edit form means "leave it alone"
    if partial and not fields.get('rating', '').strip():
        fields.pop('rating', None)

    return fields


def save_uploaded_image(store):
    image_file = request.files.get('image')
    if image_file is None or not image_file.filename:
        return None
    return store.assets.save(image_file)


@app.errorhandler(CatalogError)
def handle_catalog_error(e):
    if e.status_code >= 500:
        logger.error(f"Catalog error: {e.message}")
    return jsonify({'error': e.message}), e.status_code


@app.errorhandler(RequestEntityTooLarge)
def handle_too_large(e):
    return jsonify({'error': 'Uploaded file is too large'}), 413


@app.route('/')
@track_request
def home():
    return render_template('index.html', max_opinions=app.config['MAX_OPINIONS'])


@app.route('/info')
def info():
    import sys
    return jsonify({
        'app_name': 'Movie Catalog',
        'python_version': sys.version.split()[0],
        'asset_backend': app.config['ASSET_BACKEND'],
        'max_opinions': app.config['MAX_OPINIONS']
    })


@app.route('/health')
@track_request
def health():
    return jsonify({
        'status': 'healthy',
        'service': 'movie-catalog',
        'version': '1.0.0'
    }), 200


@app.route('/check/storage')
def check_storage_endpoint():
    result = check_storage(app.config['DATA_FILE'], app.config['UPLOAD_FOLDER'])
    status_code = 200 if result['status'] == 'healthy' else 503
    return jsonify(result), status_code


@app.route('/check/s3')
def check_s3_endpoint():
    store = get_store()
    result = check_s3(store.assets, store.referenced_assets())
    status_code = 200 if result['status'] == 'healthy' else 503
    return jsonify(result), status_code


@app.route('/api/movies')
@track_request
def list_movies():
    movies = get_store().list_movies()
    MOVIE_COUNT.set(len(movies))
    return jsonify(movies)


@app.route('/api/movies/<movie_id>')
@track_request
def get_movie(movie_id):
    return jsonify(get_store().get_movie(movie_id))


@app.route('/api/movies', methods=['POST'])
@track_request
def create_movie():
    store = get_store()
    fields = movie_fields_from_form(request.form)
    image = save_uploaded_image(store)

    try:
        movie = store.create_movie(fields, image)
    except CatalogError:
        if image:
            store.assets.delete(image)
        raise

    MOVIES_CREATED.inc()
    return jsonify(movie), 201


@app.route('/api/movies/<movie_id>', methods=['PUT'])
@track_request
def update_movie(movie_id):
    store = get_store()
    fields = movie_fields_from_form(request.form, partial=True)
    image = save_uploaded_image(store)

    try:
        movie = store.update_movie(movie_id, fields, image)
    except CatalogError:
        if image:
            store.assets.delete(image)
        raise

    return jsonify(movie)


@app.route('/api/movies/<movie_id>', methods=['DELETE'])
@track_request
def delete_movie(movie_id):
    result = get_store().delete_movie(movie_id)
    MOVIES_DELETED.inc()
    return jsonify(result)


@app.route('/api/movies/<movie_id>/opinions', methods=['POST'])
@track_request
def add_opinion(movie_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = request.form.to_dict()

    try:
        opinion = get_store().add_opinion(movie_id, data)
    except OpinionLimitReached:
        OPINION_LIMIT_REJECTIONS.inc()
        raise

    OPINIONS_ADDED.inc()
    return jsonify(opinion), 201


@app.route('/uploads/<filename>')
def get_upload(filename):
    result = get_store().assets.read(filename)

    if result is None:
        return jsonify({'error': 'Image not found'}), 404

    data, mimetype = result
    return Response(data, mimetype=mimetype)


@app.route('/metrics')
@track_request
def metrics():
    MOVIE_COUNT.set(get_store().count())
    return metrics_endpoint()


if __name__ == '__main__':
    app.run(
        host=Config.FLASK_HOST,
        port=Config.FLASK_PORT,
        debug=Config.FLASK_DEBUG
    )
