from datetime import date, timedelta

import httpx
import pytest

from bookineo import models, schemas
from bookineo.auth import PasswordHasher, TokenCodec
from bookineo.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from bookineo.mailer import Mailer
from bookineo.services.messages import MessageService
from bookineo.services.rentals import RentalService, resolve_period
from bookineo.services.users import UserService


class PlainHasher(PasswordHasher):
    """Reversible stand-in so service tests skip bcrypt entirely."""

    def __init__(self):
        pass

    def hash(self, password):
        return f"plain:{password}"

    def verify(self, password, hashed_password):
        return hashed_password == f"plain:{password}"


class SilentMailer(Mailer):
    def __init__(self):
        super().__init__(api_key=None, sender="test@bookineo.app", frontend_url="http://frontend")
        self.subjects = []

    def send(self, to, subject, html_body):
        self.subjects.append(subject)
        return True


@pytest.fixture
def user_service():
    return UserService(
        hasher=PlainHasher(),
        codec=TokenCodec("service-test-secret"),
        mailer=SilentMailer(),
        access_token_ttl=timedelta(minutes=5),
        reset_token_ttl=timedelta(minutes=5),
    )


@pytest.fixture
def users(db_session, user_service):
    alice = user_service.register(
        db_session, schemas.UserCreate(email="alice@example.com", password="secret123")
    )
    bob = user_service.register(
        db_session, schemas.UserCreate(email="bob@example.com", password="secret123")
    )
    return alice, bob


def test_register_stores_hash_only(db_session, user_service, users):
    alice, _ = users
    assert alice.password == "plain:secret123"
    assert user_service.mailer.subjects == ["Welcome to Bookineo!", "Welcome to Bookineo!"]


def test_register_duplicate_raises_conflict(db_session, user_service, users):
    with pytest.raises(ConflictError):
        user_service.register(
            db_session, schemas.UserCreate(email="alice@example.com", password="other123")
        )


def test_login_unknown_and_wrong_password_same_error(db_session, user_service, users):
    with pytest.raises(AuthenticationError) as unknown:
        user_service.login(db_session, "ghost@example.com", "secret123")
    with pytest.raises(AuthenticationError) as wrong:
        user_service.login(db_session, "alice@example.com", "nope")
    assert str(unknown.value) == str(wrong.value)


def test_get_profile_missing_user(db_session, user_service):
    with pytest.raises(NotFoundError):
        user_service.get_profile(db_session, 12345)


def test_update_profile_other_user(db_session, user_service, users):
    alice, bob = users
    with pytest.raises(AuthorizationError):
        user_service.update_profile(
            db_session, alice, bob.id, schemas.UserUpdate(first_name="Eve")
        )


def test_unread_count_after_marking_one(db_session, users):
    alice, bob = users
    service = MessageService(SilentMailer())
    sent = [
        service.send_message(
            db_session, alice, schemas.MessageCreate(recipient_id=bob.id, content=f"m{i}")
        )
        for i in range(3)
    ]

    service.mark_as_read(db_session, bob, sent[1].id)

    assert service.get_unread_count(db_session, bob) == 2
    assert service.get_unread_count(db_session, alice) == 0


def test_message_outsider_cannot_delete(db_session, user_service, users):
    alice, bob = users
    carol = user_service.register(
        db_session, schemas.UserCreate(email="carol@example.com", password="secret123")
    )
    service = MessageService(SilentMailer())
    message = service.send_message(
        db_session, alice, schemas.MessageCreate(recipient_id=bob.id, content="hi")
    )

    with pytest.raises(AuthorizationError):
        service.delete_message(db_session, carol, message.id)


def test_resolve_period():
    start = date(2026, 5, 1)
    assert resolve_period(start, None, None) == (None, None)
    assert resolve_period(start, None, 10) == (date(2026, 5, 11), 10)
    assert resolve_period(start, date(2026, 5, 4), None) == (date(2026, 5, 4), 3)
    with pytest.raises(ValidationError):
        resolve_period(start, date(2026, 4, 30), None)
    with pytest.raises(ValidationError):
        resolve_period(start, date(2026, 5, 4), 5)


def test_rental_state_machine(db_session, users):
    """
    Drive a rental through the service and check every guard.
    """
    alice, bob = users
    book = models.Book(title="Dune", owner_id=alice.id)
    db_session.add(book)
    db_session.commit()

    service = RentalService()
    rental = service.rent_book(
        db_session,
        bob,
        schemas.RentalCreate(
            book_id=book.id, rental_date=date(2026, 6, 1), status=models.RentalStatus.PENDING
        ),
    )
    assert book.status == models.BookStatus.RENTED

    with pytest.raises(ConflictError):
        service.rent_book(
            db_session, bob, schemas.RentalCreate(book_id=book.id, rental_date=date(2026, 6, 2))
        )

    service.activate(db_session, alice, rental.id)
    with pytest.raises(ConflictError):
        service.activate(db_session, alice, rental.id)

    service.return_book(
        db_session, bob, rental.id, schemas.RentalReturn(actual_return_date=date(2026, 6, 9))
    )
    db_session.refresh(book)
    assert rental.status == models.RentalStatus.RETURNED
    assert book.status == models.BookStatus.AVAILABLE

    with pytest.raises(ConflictError):
        service.cancel(db_session, bob, rental.id)


def test_mailer_without_key_does_not_send(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("no HTTP call expected")

    monkeypatch.setattr(httpx, "post", fail)
    mailer = Mailer(api_key=None, sender="a@b.c", frontend_url="http://frontend")
    assert mailer.send("x@example.com", "Hello", "<p>hi</p>") is False


def test_mailer_transport_error_is_logged_not_raised(monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx, "post", boom)
    mailer = Mailer(api_key="re_test", sender="a@b.c", frontend_url="http://frontend")
    assert mailer.send("x@example.com", "Hello", "<p>hi</p>") is False
    assert "Failed to send" in caplog.text


def test_mailer_posts_to_resend(monkeypatch):
    calls = []

    def fake_post(url, headers, json, timeout):
        calls.append({"url": url, "headers": headers, "json": json})
        return httpx.Response(200, json={"id": "email-1"}, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx, "post", fake_post)
    mailer = Mailer(api_key="re_test", sender="Bookineo <noreply@bookineo.app>", frontend_url="http://frontend")
    assert mailer.send_welcome("x@example.com", "Xavier") is True
    assert calls[0]["headers"] == {"Authorization": "Bearer re_test"}
    assert calls[0]["json"]["to"] == ["x@example.com"]
    assert "Xavier" in calls[0]["json"]["html"]
