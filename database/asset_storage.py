"""Image assets referenced by movie records.

Every backend hands out references of the form ``/uploads/<filename>``.
Only references under that prefix are managed here; anything else (an
external URL pasted into the data file, for instance) is left alone.
"""
import logging
import mimetypes
import os
import secrets
import time

import boto3
from botocore.exceptions import ClientError
from werkzeug.utils import secure_filename

from config import Config
from database.errors import InvalidImage, StorageError

logger = logging.getLogger(__name__)

MANAGED_PREFIX = '/uploads/'

ALLOWED_EXTENSIONS = {'jpeg', 'jpg', 'png', 'gif'}
ALLOWED_MIMETYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/gif'}


def validate_image(file_storage):
    """Reject uploads whose extension or MIME type is not an image we accept"""
    filename = secure_filename(file_storage.filename or '')
    extension = os.path.splitext(filename)[1].lstrip('.').lower()
    mimetype = (file_storage.mimetype or '').lower()

    if extension not in ALLOWED_EXTENSIONS or mimetype not in ALLOWED_MIMETYPES:
        raise InvalidImage('Only images are allowed (jpeg, jpg, png, gif)')

    return extension


def new_filename(extension):
    """Time-derived name with a random suffix, e.g. 1697712000000-3fa9c2d1.png"""
    millis = int(time.time() * 1000)
    return f"{millis}-{secrets.token_hex(4)}.{extension}"


def is_managed(reference):
    return bool(reference) and reference.startswith(MANAGED_PREFIX)


def filename_from(reference):
    if not is_managed(reference):
        return None
    filename = reference[len(MANAGED_PREFIX):]
    # Nested paths or traversal never come out of save()
    if not filename or filename != secure_filename(filename):
        return None
    return filename


def reference_for(filename):
    return f"{MANAGED_PREFIX}{filename}"


class AssetStorage:
    backend = None

    def save(self, file_storage):
        raise NotImplementedError

    def exists(self, filename):
        raise NotImplementedError

    def read(self, filename):
        raise NotImplementedError

    def list_filenames(self):
        raise NotImplementedError

    def _remove(self, filename):
        raise NotImplementedError

    def delete(self, reference):
        """
        Remove the asset behind a reference, best effort.

        Returns:
            bool: True if a file was removed
        """
        filename = filename_from(reference)
        if filename is None:
            return False

        if not self.exists(filename):
            logger.debug(f"Asset already gone: {reference}")
            return False

        self._remove(filename)
        logger.info(f"Removed asset {reference}")
        return True


class LocalAssetStorage(AssetStorage):
    backend = 'local'

    def __init__(self, folder):
        self.folder = folder

    def _path(self, filename):
        return os.path.join(self.folder, filename)

    def save(self, file_storage):
        extension = validate_image(file_storage)
        filename = new_filename(extension)

        try:
            os.makedirs(self.folder, exist_ok=True)
            file_storage.save(self._path(filename))
        except OSError as e:
            logger.error(f"Failed to write upload {filename}: {e}")
            raise StorageError(f'Failed to store image: {e}') from e

        logger.info(f"Stored upload {filename} ({file_storage.filename})")
        return reference_for(filename)

    def exists(self, filename):
        return os.path.isfile(self._path(filename))

    def read(self, filename):
        if filename != secure_filename(filename) or not self.exists(filename):
            return None

        with open(self._path(filename), 'rb') as f:
            data = f.read()

        mimetype = mimetypes.guess_type(filename)[0] or 'application/octet-stream'
        return data, mimetype

    def list_filenames(self):
        if not os.path.isdir(self.folder):
            return []
        return sorted(
            name for name in os.listdir(self.folder)
            if os.path.isfile(self._path(name))
        )

    def _remove(self, filename):
        try:
            os.remove(self._path(filename))
        except FileNotFoundError:
            logger.debug(f"Asset vanished before removal: {filename}")
        except OSError as e:
            raise StorageError(f'Failed to remove image: {e}') from e


class S3AssetStorage(AssetStorage):
    backend = 's3'

    def __init__(self, bucket_name, prefix='uploads/', region_name='us-east-1'):
        self.bucket_name = bucket_name
        self.prefix = prefix
        self.s3 = boto3.client('s3', region_name=region_name)

    def _key(self, filename):
        return f"{self.prefix}{filename}"

    def save(self, file_storage):
        extension = validate_image(file_storage)
        filename = new_filename(extension)

        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=self._key(filename),
                Body=file_storage.read(),
                ContentType=file_storage.mimetype,
                CacheControl='max-age=31536000'
            )
        except ClientError as e:
            logger.error(f"S3 upload error: {e}")
            raise StorageError(f'Failed to store image: {e}') from e

        logger.info(f"Stored upload s3://{self.bucket_name}/{self._key(filename)}")
        return reference_for(filename)

    def exists(self, filename):
        try:
            self.s3.head_object(Bucket=self.bucket_name, Key=self._key(filename))
            return True
        except ClientError:
            return False

    def read(self, filename):
        if filename != secure_filename(filename):
            return None

        try:
            response = self.s3.get_object(Bucket=self.bucket_name, Key=self._key(filename))
        except ClientError as e:
            logger.warning(f"S3 download error for {filename}: {e}")
            return None

        mimetype = response.get('ContentType') or 'application/octet-stream'
        return response['Body'].read(), mimetype

    def list_filenames(self):
        filenames = []
        continuation_token = None

        while True:
            kwargs = {'Bucket': self.bucket_name, 'Prefix': self.prefix}
            if continuation_token:
                kwargs['ContinuationToken'] = continuation_token

            response = self.s3.list_objects_v2(**kwargs)

            for obj in response.get('Contents', []):
                filenames.append(obj['Key'][len(self.prefix):])

            if not response.get('IsTruncated'):
                break

            continuation_token = response.get('NextContinuationToken')

        return sorted(filenames)

    def _remove(self, filename):
        try:
            self.s3.delete_object(Bucket=self.bucket_name, Key=self._key(filename))
        except ClientError as e:
            raise StorageError(f'Failed to remove image: {e}') from e


def get_asset_storage(config=Config):
    """Build the storage backend selected by ASSET_BACKEND"""
    get = config.get if isinstance(config, dict) else lambda key: getattr(config, key)

    backend = get('ASSET_BACKEND')
    if backend == 's3':
        return S3AssetStorage(
            bucket_name=get('S3_BUCKET_NAME'),
            prefix=get('S3_UPLOAD_PREFIX'),
            region_name=get('AWS_REGION')
        )
    if backend == 'local':
        return LocalAssetStorage(get('UPLOAD_FOLDER'))

    raise ValueError(f"Unknown ASSET_BACKEND: {backend}")
