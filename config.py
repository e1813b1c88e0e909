import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    FLASK_HOST = os.getenv('FLASK_HOST', '0.0.0.0')
    FLASK_PORT = int(os.getenv('FLASK_PORT', '5000'))
    FLASK_DEBUG = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()


    DATA_FILE = os.getenv('DATA_FILE', os.path.join('data', 'movies.json'))
    # Can only lower the cap of 3 opinions per movie
    MAX_OPINIONS = int(os.getenv('MAX_OPINIONS', '3'))


    # local | s3
    ASSET_BACKEND = os.getenv('ASSET_BACKEND', 'local').lower()
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', 'uploads')
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', str(5 * 1024 * 1024)))


    AWS_REGION = os.getenv('AWS_REGION', 'us-east-1')
    S3_BUCKET_NAME = os.getenv('S3_BUCKET_NAME', 'movie-catalog-uploads')
    S3_UPLOAD_PREFIX = os.getenv('S3_UPLOAD_PREFIX', 'uploads/')


    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')
