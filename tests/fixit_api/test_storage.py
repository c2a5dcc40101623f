import pytest

from fixit_api.core import config
from fixit_api.core.errors import InvalidUploadError, StorageError
from fixit_api.storage import ObjectStore, build_storage_name, validate_image


@pytest.mark.parametrize(
    ('original_name', 'expected'),
    [
        ('My Photo.PNG', 'my-photo-1700000000000-42.PNG'),
        ('/tmp/uploads/broken  pipe.jpeg', 'broken-pipe-1700000000000-42.jpeg'),
        ('snapshot', 'snapshot-1700000000000-42.jpg'),
        (None, 'image-1700000000000-42.jpg'),
        ('', 'image-1700000000000-42.jpg'),
        ('ÿÿÿ.webp', 'image-1700000000000-42.webp'),
    ],
)
def test_build_storage_name(original_name, expected: str) -> None:
    assert build_storage_name(original_name, now_ms=1700000000000, suffix=42) == expected


def test_build_storage_name_is_unique_across_calls() -> None:
    names = {build_storage_name('photo.jpg') for _ in range(50)}

    assert len(names) == 50


def test_validate_image_rejects_non_image_content_type() -> None:
    with pytest.raises(InvalidUploadError) as exception_info:
        validate_image(b'hello', 'text/plain')

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Only image uploads are allowed'


def test_validate_image_rejects_oversized_payload() -> None:
    with pytest.raises(InvalidUploadError) as exception_info:
        validate_image(b'\x00' * (config.MAX_UPLOAD_BYTES + 1), 'image/png')

    assert exception_info.value.detail == 'Image must be 5 MB or smaller'


def test_store_image_uploads_without_overwriting(store, supabase_client) -> None:
    path = store.store_image(b'jpeg-bytes', 'image/jpeg', 'crack.jpg')

    data, options = supabase_client.bucket.objects[path]
    assert data == b'jpeg-bytes'
    assert options == {'content-type': 'image/jpeg', 'upsert': 'false'}
    assert supabase_client.storage.requested_buckets == ['campus-fixit-uploads']


def test_store_image_fails_when_storage_unconfigured() -> None:
    with pytest.raises(StorageError) as exception_info:
        ObjectStore(None).store_image(b'jpeg-bytes', 'image/jpeg', 'crack.jpg')

    assert exception_info.value.status_code == 500


def test_store_image_validates_before_touching_storage() -> None:
    # Validation runs even without a configured client.
    with pytest.raises(InvalidUploadError):
        ObjectStore(None).store_image(b'text', 'text/plain', 'notes.txt')


def test_store_image_wraps_bucket_failures(store, supabase_client) -> None:
    supabase_client.bucket.fail_upload = True

    with pytest.raises(StorageError) as exception_info:
        store.store_image(b'jpeg-bytes', 'image/jpeg', 'crack.jpg')

    assert exception_info.value.status_code == 500
    assert isinstance(exception_info.value.__cause__, RuntimeError)


def test_sign_url_passes_absolute_urls_through() -> None:
    store = ObjectStore(None)

    assert store.sign_url('https://cdn.example.com/a.jpg') == 'https://cdn.example.com/a.jpg'
    assert store.sign_url('http://cdn.example.com/a.jpg') == 'http://cdn.example.com/a.jpg'


def test_sign_url_uses_one_hour_validity(store) -> None:
    assert store.sign_url('crack.jpg').endswith('&expires_in=3600')


def test_sign_url_accepts_camel_case_response_key() -> None:
    class Bucket:
        def create_signed_url(self, path, expires_in):
            return {'signedUrl': f'https://signed.example.com/{path}'}

    class Client:
        class storage:
            @staticmethod
            def from_(name):
                return Bucket()

    assert ObjectStore(Client()).sign_url('a.jpg') == 'https://signed.example.com/a.jpg'


def test_sign_url_wraps_signing_failures(store, supabase_client) -> None:
    supabase_client.bucket.fail_sign = True

    with pytest.raises(StorageError):
        store.sign_url('crack.jpg')


def test_sign_url_fails_when_response_has_no_url() -> None:
    class Bucket:
        def create_signed_url(self, path, expires_in):
            return {}

    class Client:
        class storage:
            @staticmethod
            def from_(name):
                return Bucket()

    with pytest.raises(StorageError):
        ObjectStore(Client()).sign_url('a.jpg')


def test_sign_many_keeps_order_and_empty_entries(store) -> None:
    signed = store.sign_many(['a.jpg', None, 'https://legacy.example.com/b.jpg', 'c.jpg'])

    assert signed[0].startswith('https://storage.test/object/sign/a.jpg?')
    assert signed[1] is None
    assert signed[2] == 'https://legacy.example.com/b.jpg'
    assert signed[3].startswith('https://storage.test/object/sign/c.jpg?')


def test_sign_many_without_images_makes_no_calls() -> None:
    assert ObjectStore(None).sign_many([None, None]) == [None, None]


def test_sign_many_fail_soft_returns_none_for_unsignable_paths(store, supabase_client) -> None:
    supabase_client.bucket.fail_sign = True

    signed = store.sign_many(['a.jpg', None, 'https://legacy.example.com/b.jpg'], fail_soft=True)

    assert signed == [None, None, 'https://legacy.example.com/b.jpg']
    with pytest.raises(StorageError):
        store.sign_many(['a.jpg'])


def test_remove_image_deletes_object(store, supabase_client) -> None:
    path = store.store_image(b'jpeg-bytes', 'image/jpeg', 'crack.jpg')

    store.remove_image(path)

    assert path not in supabase_client.bucket.objects


def test_remove_image_logs_instead_of_raising(caplog) -> None:
    ObjectStore(None).remove_image('crack.jpg')

    assert 'Could not remove orphaned image crack.jpg' in caplog.text
