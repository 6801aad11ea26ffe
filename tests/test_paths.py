"""Unit tests for app/utils/paths.py."""

from app.utils.paths import get_path, pop_path, set_path


def test_get_path_nested() -> None:
    data = {"contact": {"email": "a@b.com"}}
    assert get_path(data, "contact.email") == "a@b.com"
    assert get_path(data, "contact.phone") is None
    assert get_path(data, "contact.email.domain") is None


def test_set_path_copies_and_creates_intermediates() -> None:
    data = {"email": "a@b.com"}
    result = set_path(data, "credentials.password", "hashed")
    assert result == {"email": "a@b.com", "credentials": {"password": "hashed"}}
    assert data == {"email": "a@b.com"}


def test_pop_path_removes_only_target() -> None:
    data = {"email": "a@b.com", "meta": {"token": "t", "keep": 1}}
    assert pop_path(data, "meta.token") == {"email": "a@b.com", "meta": {"keep": 1}}
    assert pop_path(data, "missing.token") == data
    assert data["meta"]["token"] == "t"
