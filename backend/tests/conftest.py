import os

# Must be set before videotube.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-secret")

import itertools

import pytest
from fastapi.testclient import TestClient

from videotube.core.security import create_access_token
from videotube.db.base import Base
from videotube.db.session import SessionLocal, engine, get_db
from videotube.models import Comment, Tweet, User, Video

_seq = itertools.count(1)


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    def _make(full_name=None, **fields):
        n = next(_seq)
        user = User(
            username=fields.pop("username", f"user{n}"),
            email=fields.pop("email", f"user{n}@example.com"),
            full_name=full_name or f"User {n}",
            avatar=fields.pop("avatar", f"https://img.example.com/u{n}.png"),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_video(db):
    def _make(owner, title="Intro to Python", duration=600.0, **fields):
        video = Video(owner_id=owner.id, title=title, duration=duration, **fields)
        db.add(video)
        db.commit()
        db.refresh(video)
        return video

    return _make


@pytest.fixture
def make_comment(db):
    def _make(owner, video, content="Great video!", parent=None):
        comment = Comment(
            owner_id=owner.id,
            video_id=video.id,
            content=content,
            parent_id=parent.id if parent else None,
        )
        db.add(comment)
        db.commit()
        db.refresh(comment)
        return comment

    return _make


@pytest.fixture
def make_tweet(db):
    def _make(owner, content="Shipping a new series next week"):
        tweet = Tweet(owner_id=owner.id, content=content)
        db.add(tweet)
        db.commit()
        db.refresh(tweet)
        return tweet

    return _make


@pytest.fixture
def alice(make_user):
    return make_user(full_name="Alice Smith", username="alice")


@pytest.fixture
def bob(make_user):
    return make_user(full_name="Bob Jones", username="bob")


@pytest.fixture
def client(db):
    from videotube.main import app

    def _get_test_db():
        yield db

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
