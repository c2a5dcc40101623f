import itertools
import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')
os.environ.setdefault('BCRYPT_ROUNDS', '4')
os.environ.setdefault('SUPABASE_STORAGE_BUCKET', 'campus-fixit-uploads')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from fixit_api.auth import passwords  # noqa: E402
from fixit_api.auth.dependencies import Principal  # noqa: E402
from fixit_api.database import Base, get_db  # noqa: E402
from fixit_api.main import app  # noqa: E402
from fixit_api.models.user import ROLE_ADMIN, ROLE_STUDENT, User  # noqa: E402
from fixit_api.storage import ObjectStore, get_object_store  # noqa: E402


class FakeBucket:
    def __init__(self):
        self.objects = {}
        self.fail_upload = False
        self.fail_sign = False
        self._tokens = itertools.count(1)

    def upload(self, path, file, file_options=None):
        if self.fail_upload:
            raise RuntimeError('bucket unavailable')
        self.objects[path] = (file, file_options)
        return {'Key': path}

    def remove(self, paths):
        for path in paths:
            self.objects.pop(path, None)
        return [{'name': path} for path in paths]

    def create_signed_url(self, path, expires_in):
        if self.fail_sign:
            raise RuntimeError('signing unavailable')
        token = next(self._tokens)
        return {'signedURL': f'https://storage.test/object/sign/{path}?token={token}&expires_in={expires_in}'}


class FakeStorage:
    def __init__(self, bucket):
        self.bucket = bucket
        self.requested_buckets = []

    def from_(self, name):
        self.requested_buckets.append(name)
        return self.bucket


class FakeSupabaseClient:
    def __init__(self):
        self.bucket = FakeBucket()
        self.storage = FakeStorage(self.bucket)


@pytest.fixture
def issue_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(issue_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=issue_engine)


@pytest.fixture
def issue_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def supabase_client():
    return FakeSupabaseClient()


@pytest.fixture
def store(supabase_client):
    return ObjectStore(supabase_client, bucket='campus-fixit-uploads')


@pytest.fixture
def make_user(issue_db):
    def _make_user(name='Student', email='student@example.edu', role=ROLE_STUDENT, password='pw123456'):
        user = User(name=name, email=email, password=passwords.hash_password(password), role=role)
        issue_db.add(user)
        issue_db.commit()
        issue_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def student(make_user):
    return Principal.from_user(make_user())


@pytest.fixture
def other_student(make_user):
    return Principal.from_user(make_user(name='Other', email='other@example.edu'))


@pytest.fixture
def admin(make_user):
    return Principal.from_user(make_user(name='Admin', email='admin@example.edu', role=ROLE_ADMIN))


@pytest.fixture
def api_client(session_factory, store):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: store
    app.state.limiter.reset()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    def _auth_header(token: str) -> dict:
        return {'Authorization': f'Bearer {token}'}

    return _auth_header


@pytest.fixture
def api_http(api_client):
    """HTTP client rooted at ``/api`` as the client library expects."""
    return TestClient(app, base_url='http://testserver/api')
