import json
import os
from config import Config


def check_storage(data_file=None, upload_folder=None):
    data_file = data_file or Config.DATA_FILE
    upload_folder = upload_folder or Config.UPLOAD_FOLDER

    try:
        if not os.path.exists(data_file):
            return {
                'status': 'unhealthy',
                'service': 'storage',
                'message': f'Catalog file not found: {data_file}'
            }

        with open(data_file, 'r', encoding='utf-8') as f:
            movies = json.load(f)

        if not isinstance(movies, list):
            return {
                'status': 'unhealthy',
                'service': 'storage',
                'message': 'Catalog file does not contain a list of movies'
            }

        opinions_count = sum(len(movie.get('opinions', [])) for movie in movies)
        with_image = sum(1 for movie in movies if movie.get('image'))

        data_dir = os.path.dirname(os.path.abspath(data_file))
        upload_files = 0
        upload_size = 0
        if os.path.isdir(upload_folder):
            for name in os.listdir(upload_folder):
                path = os.path.join(upload_folder, name)
                if os.path.isfile(path):
                    upload_files += 1
                    upload_size += os.path.getsize(path)

        return {
            'status': 'healthy',
            'service': 'storage',
            'message': 'Catalog file is readable',
            'details': {
                'catalog': {
                    'path': data_file,
                    'size_bytes': os.path.getsize(data_file),
                    'writable': os.access(data_dir, os.W_OK)
                },
                'data': {
                    'movies': len(movies),
                    'opinions': opinions_count,
                    'movies_with_image': with_image
                },
                'uploads': {
                    'folder': upload_folder,
                    'exists': os.path.isdir(upload_folder),
                    'files': upload_files,
                    'total_size': f"{upload_size / 1024:.2f} KB"
                }
            }
        }

    except json.JSONDecodeError as e:
        return {
            'status': 'unhealthy',
            'service': 'storage',
            'message': f'Catalog file is corrupt: {str(e)}'
        }
    except Exception as e:
        return {
            'status': 'unhealthy',
            'service': 'storage',
            'message': f'Unexpected error: {str(e)}'
        }
