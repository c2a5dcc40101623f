"""Supabase Storage adapter for issue photos.

Issues persist the storage path of their photo. Every read mints a fresh
signed URL from that path, so no long-lived URL is ever stored.
"""

import logging
import os
import random
import re
import time
from concurrent.futures import ThreadPoolExecutor

from supabase import Client, create_client

from fixit_api.core import config
from fixit_api.core.errors import InvalidUploadError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = '.jpg'
DEFAULT_BASENAME = 'image'
DEFAULT_CONTENT_TYPE = 'image/jpeg'
_MAX_SIGNING_WORKERS = 8


def is_absolute_url(value: str) -> bool:
    return value.startswith('http://') or value.startswith('https://')


def build_storage_name(original_name: str | None, now_ms: int | None = None, suffix: int | None = None) -> str:
    original_name = os.path.basename(original_name or DEFAULT_BASENAME)
    stem, extension = os.path.splitext(original_name)
    if not stem and extension:
        # ".png" style names have no stem, only an extension.
        stem, extension = extension, ''
    base_name = re.sub(r'[^a-z0-9._-]', '', re.sub(r'\s+', '-', stem).lower()) or DEFAULT_BASENAME
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    suffix = random.randint(0, 10 ** 9) if suffix is None else suffix
    return f'{base_name}-{now_ms}-{suffix}{extension or DEFAULT_EXTENSION}'


def validate_image(data: bytes, content_type: str | None) -> None:
    if not (content_type or '').lower().startswith('image/'):
        raise InvalidUploadError('Only image uploads are allowed')
    if len(data) > config.MAX_UPLOAD_BYTES:
        limit_mb = config.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise InvalidUploadError(f'Image must be {limit_mb} MB or smaller')


class ObjectStore:
    def __init__(self, client: Client | None, bucket: str = config.SUPABASE_STORAGE_BUCKET):
        self.client = client
        self.bucket = bucket

    def _bucket(self):
        if self.client is None:
            raise StorageError('Storage configuration error: Supabase client not initialized')
        return self.client.storage.from_(self.bucket)

    def store_image(self, data: bytes, content_type: str | None, original_name: str | None) -> str:
        validate_image(data, content_type)
        bucket = self._bucket()
        storage_path = build_storage_name(original_name)

        try:
            bucket.upload(
                storage_path,
                data,
                {'content-type': content_type or DEFAULT_CONTENT_TYPE, 'upsert': 'false'},
            )
        except Exception as exc:
            logger.exception('Supabase upload failed for %s', storage_path)
            raise StorageError(f'Failed to upload file: {exc}') from exc

        logger.info('Stored image %s in bucket %s', storage_path, self.bucket)
        return storage_path

    def remove_image(self, storage_path: str) -> None:
        try:
            self._bucket().remove([storage_path])
        except Exception:
            logger.exception('Could not remove orphaned image %s', storage_path)
        else:
            logger.info('Removed orphaned image %s', storage_path)

    def sign_url(self, storage_path: str, ttl_seconds: int = config.SIGNED_URL_TTL_SECONDS) -> str:
        if is_absolute_url(storage_path):
            return storage_path

        bucket = self._bucket()
        try:
            response = bucket.create_signed_url(storage_path, ttl_seconds)
        except Exception as exc:
            logger.exception('Signing failed for %s', storage_path)
            raise StorageError(f'Failed to sign URL: {exc}') from exc

        signed_url = (response or {}).get('signedUrl') or (response or {}).get('signedURL')
        if not signed_url:
            raise StorageError(f'Failed to sign URL for {storage_path}')
        return signed_url

    def sign_url_or_none(self, storage_path: str) -> str | None:
        try:
            return self.sign_url(storage_path)
        except StorageError as exc:
            logger.warning('Serving %s without an image URL: %s', storage_path, exc.detail)
            return None

    def sign_many(self, storage_paths: list[str | None], fail_soft: bool = False) -> list[str | None]:
        """Sign each path independently; ``None`` entries stay ``None``.

        With ``fail_soft`` a path that cannot be signed yields ``None``
        instead of failing the whole batch.
        """
        pending = [path for path in storage_paths if path]
        if not pending:
            return list(storage_paths)

        sign = self.sign_url_or_none if fail_soft else self.sign_url
        with ThreadPoolExecutor(max_workers=min(_MAX_SIGNING_WORKERS, len(pending))) as pool:
            signed = iter(list(pool.map(sign, pending)))
        return [next(signed) if path else None for path in storage_paths]


_store: ObjectStore | None = None


def get_object_store() -> ObjectStore:
    global _store
    if _store is None:
        client = None
        if config.storage_configured():
            client = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
        else:
            logger.warning('Supabase credentials not configured. File uploads will fail.')
        _store = ObjectStore(client)
    return _store
