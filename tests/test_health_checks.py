import json
from unittest import mock

from botocore.exceptions import ClientError


def test_storage_check_structure(store, data_file, upload_folder):
    from services.storage_check import check_storage

    store.create_movie({'name': 'Dune'})

    result = check_storage(data_file, upload_folder)

    assert 'status' in result
    assert 'service' in result
    assert 'message' in result
    assert result['service'] == 'storage'
    assert result['status'] == 'healthy'
    assert result['details']['data']['movies'] == 1
    assert result['details']['uploads']['exists'] is False


def test_storage_check_missing_file(tmp_path):
    from services.storage_check import check_storage

    result = check_storage(str(tmp_path / 'missing.json'), str(tmp_path))
    assert result['status'] == 'unhealthy'


def test_storage_check_corrupt_file(tmp_path):
    from services.storage_check import check_storage

    data_file = tmp_path / 'movies.json'
    data_file.write_text('{oops', encoding='utf-8')

    result = check_storage(str(data_file), str(tmp_path))
    assert result['status'] == 'unhealthy'
    assert 'corrupt' in result['message']


def test_storage_check_not_a_list(tmp_path):
    from services.storage_check import check_storage

    data_file = tmp_path / 'movies.json'
    data_file.write_text(json.dumps({'a': 1}), encoding='utf-8')

    assert check_storage(str(data_file), str(tmp_path))['status'] == 'unhealthy'


def test_s3_check_not_in_use(assets):
    from services.s3_check import check_s3

    result = check_s3(assets, set())

    assert result['service'] == 's3'
    assert result['status'] == 'healthy'
    assert result['details'] == {'in_use': False}
    assert 'local' in result['message']


@mock.patch('database.asset_storage.boto3.client')
def test_s3_check_missing_bucket(mock_client):
    from database.asset_storage import S3AssetStorage
    from services.s3_check import check_s3

    mock_client.return_value.head_bucket.side_effect = ClientError(
        {'Error': {'Code': '404', 'Message': 'Not Found'}}, 'HeadBucket'
    )

    result = check_s3(S3AssetStorage('test-bucket'), set())

    assert result['service'] == 's3'
    assert result['status'] == 'unhealthy'
    assert result['message'] == 'Bucket not found: test-bucket'


@mock.patch('database.asset_storage.boto3.client')
def test_s3_check_compares_bucket_with_catalog(mock_client):
    from database.asset_storage import S3AssetStorage
    from services.s3_check import check_s3

    s3 = mock_client.return_value
    s3.list_objects_v2.return_value = {
        'Contents': [{'Key': 'uploads/kept.png'}, {'Key': 'uploads/stray.png'}],
        'IsTruncated': False
    }

    result = check_s3(
        S3AssetStorage('test-bucket'),
        {'/uploads/kept.png', '/uploads/gone.png'}
    )

    assert result['status'] == 'healthy'
    assert result['details']['in_use'] is True
    assert result['details']['images'] == {'stored': 2, 'referenced': 2, 'unreferenced': 1}
    assert result['details']['missing'] == ['gone.png']
    s3.head_bucket.assert_called_once_with(Bucket='test-bucket')
