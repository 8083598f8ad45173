import os
import time
from werkzeug.utils import secure_filename
from flask import current_app, url_for
import boto3
from botocore.client import Config

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def _ensure_local_dir():
    d = current_app.config['LOCAL_STORAGE_DIR']
    os.makedirs(d, exist_ok=True)
    return d


def _s3_client():
    # endpoint_url may be empty for AWS-managed S3
    s3_kwargs = {}
    endpoint = current_app.config.get('S3_ENDPOINT')
    if endpoint:
        s3_kwargs['endpoint_url'] = endpoint
    region = current_app.config.get('S3_REGION')
    if region:
        s3_kwargs['region_name'] = region
    return boto3.client(
        's3',
        aws_access_key_id=current_app.config.get('S3_ACCESS_KEY'),
        aws_secret_access_key=current_app.config.get('S3_SECRET_KEY'),
        config=Config(signature_version='s3v4', s3={'addressing_style': 'virtual'}),
        **s3_kwargs,
    )


def avatar_key(user_id, filename):
    ext = secure_filename(filename).rsplit('.', 1)[-1].lower() if '.' in filename else ''
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValueError(f"Unsupported image type: {filename}")
    return f"avatars/{user_id}-{int(time.time())}.{ext}"


def save_file(file_storage, key):
    """Store an upload under ``key`` and return a URL the browser can load."""
    backend = current_app.config.get('STORAGE_BACKEND', 'local')
    if backend == 's3':
        bucket = current_app.config.get('S3_BUCKET')
        stream = getattr(file_storage, 'stream', file_storage)
        _s3_client().upload_fileobj(
            stream, bucket, key,
            ExtraArgs={'ContentType': file_storage.mimetype or 'application/octet-stream',
                       'CacheControl': 'max-age=3600'},
        )
        public = current_app.config.get('S3_PUBLIC_URL')
        if public:
            return f"{public.rstrip('/')}/{key}"
        return f"s3://{bucket}/{key}"

    d = _ensure_local_dir()
    path = os.path.join(d, key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    file_storage.save(path)
    return url_for('guest.uploaded_file', filename=key)


def save_avatar(file_storage, user_id):
    return save_file(file_storage, avatar_key(user_id, file_storage.filename or ''))
