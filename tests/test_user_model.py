"""Tests for model helpers."""

from models import db
from models.event import EVENT_CODE_ALPHABET, generate_event_code
from models.session import TOKEN_PATTERN, AuthSession, generate_token
from models.user import User, legacy_password_hash


def test_password_helpers_use_salted_hashes(app):
    with app.app_context():
        first = User(name="A", email="a@example.com")
        second = User(name="B", email="b@example.com")
        first.set_password("same-password")
        second.set_password("same-password")

        assert first.password_hash != second.password_hash
        assert first.has_legacy_hash() is False
        assert first.check_password("same-password")
        assert not first.check_password("other-password")


def test_legacy_sha256_hash_is_verified(app):
    with app.app_context():
        salt = app.config["LEGACY_PASSWORD_SALT"]
        user = User(name="Old", email="old@example.com")
        user.password_hash = legacy_password_hash("admin123", salt)

        assert user.has_legacy_hash() is True
        assert user.check_password("admin123")
        assert not user.check_password("admin1234")


def test_user_role_defaults_to_member(app):
    with app.app_context():
        user = User(name="Default", email="default@example.com")
        user.set_password("pw12")
        db.session.add(user)
        db.session.commit()

        assert user.role == "member"
        assert user.is_admin is False
        assert user.to_dict()["email"] == "default@example.com"
        assert "password_hash" not in user.to_dict()


def test_generated_tokens_are_256_bit_hex():
    tokens = {generate_token() for _ in range(20)}
    assert len(tokens) == 20
    for token in tokens:
        assert TOKEN_PATTERN.match(token)


def test_session_issue_sets_expiry(app):
    with app.app_context():
        user = User(name="S", email="s@example.com")
        user.set_password("pw12")
        db.session.add(user)
        session = AuthSession.issue(user, ttl_days=7)
        db.session.commit()

        assert session.user_id == user.id
        assert session.is_expired() is False
        assert (session.expires_at - session.created_at).days in (6, 7)


def test_event_codes_avoid_confusable_characters():
    for char in "0O1IL":
        assert char not in EVENT_CODE_ALPHABET
    for _ in range(50):
        code = generate_event_code(6)
        assert len(code) == 6
        assert set(code) <= set(EVENT_CODE_ALPHABET)
