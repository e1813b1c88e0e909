from botocore.exceptions import ClientError

from database.asset_storage import filename_from


def check_s3(assets, referenced):
    """
    Check the S3 bucket holding movie images

    Args:
        assets: asset storage the catalog is configured with
        referenced: image references currently held by movies

    Returns:
        dict: status document; S3 is reported as not in use for other backends
    """
    if assets.backend != 's3':
        return {
            'status': 'healthy',
            'service': 's3',
            'message': f'S3 is not in use (asset backend: {assets.backend})',
            'details': {
                'in_use': False
            }
        }

    try:
        assets.s3.head_bucket(Bucket=assets.bucket_name)

        stored = set(assets.list_filenames())
        expected = {filename_from(reference) for reference in referenced} - {None}

        missing = sorted(expected - stored)
        unreferenced = sorted(stored - expected)

        return {
            'status': 'healthy',
            'service': 's3',
            'message': f'{len(stored)} image(s) in s3://{assets.bucket_name}/{assets.prefix}',
            'details': {
                'in_use': True,
                'bucket': assets.bucket_name,
                'prefix': assets.prefix,
                'images': {
                    'stored': len(stored),
                    'referenced': len(expected),
                    'unreferenced': len(unreferenced)
                },
                # Movies pointing at images the bucket no longer has
                'missing': missing
            }
        }

    except ClientError as e:
        error_code = e.response['Error']['Code']
        if error_code == '404':
            message = f'Bucket not found: {assets.bucket_name}'
        elif error_code == '403':
            message = f'Access denied to bucket: {assets.bucket_name}'
        else:
            message = f'AWS error: {e.response["Error"]["Message"]}'

        return {
            'status': 'unhealthy',
            'service': 's3',
            'message': message
        }
    except Exception as e:
        return {
            'status': 'unhealthy',
            'service': 's3',
            'message': f'Unexpected error: {str(e)}'
        }
