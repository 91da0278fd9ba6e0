"""
Pytest fixtures for guestbook tests.

Route tests run against an app built by ``create_app`` with test settings,
with ``get_db`` pointed at an in-memory SQLite session. Mail is never sent for
real: ``fake_smtp`` swaps the SMTP classes for a recorder.
"""

from __future__ import annotations

import smtplib
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from guestbook.db.base import Base
from guestbook.db.session import get_db
from guestbook.main import create_app
from guestbook.models import entry as _entry  # noqa: F401
from guestbook.settings import Settings

ADMIN_TOKEN = "test-admin-token"


def make_settings(**overrides) -> Settings:
    values = {
        "admin_token": ADMIN_TOKEN,
        "db_path": ":memory:",
        "public_base_url": "https://guestbook.example.org",
        "smtp_verify_on_startup": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def smtp_settings() -> Settings:
    return make_settings(
        smtp_host="smtp.example.org",
        smtp_user="mailer",
        smtp_pass="mail-password",
        smtp_port=587,
        mail_to="moderator@example.org",
        mail_from="Guestbook <noreply@example.org>",
    )


@pytest.fixture
def sync_db_session() -> Generator[Session, None, None]:
    # StaticPool keeps one connection, so threadpool-run endpoints see the same database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    TestSession = sessionmaker(bind=engine)
    session = TestSession()

    yield session

    session.close()
    engine.dispose()


def _client_for(settings: Settings, session: Session) -> Generator[TestClient, None, None]:
    app = create_app(settings)

    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sync_client(test_settings, sync_db_session):
    """Test client for an app without mail transport."""
    yield from _client_for(test_settings, sync_db_session)


@pytest.fixture
def mail_client(smtp_settings, sync_db_session, fake_smtp):
    """Test client for an app with SMTP configured (and faked)."""
    _ = fake_smtp
    yield from _client_for(smtp_settings, sync_db_session)


class FakeSMTPRecorder:
    def __init__(self):
        self.connections: list[dict] = []
        self.sent: list = []
        self.fail_with: Exception | None = None
        self.offer_starttls = True
        # Called with each message as it is sent, e.g. to record ordering or stall
        self.on_send = None


@pytest.fixture
def fake_smtp(monkeypatch) -> FakeSMTPRecorder:
    recorder = FakeSMTPRecorder()

    class FakeSMTP:
        use_ssl = False

        def __init__(self, host, port, timeout=None, context=None):
            self.info = {
                "host": host,
                "port": port,
                "timeout": timeout,
                "ssl": self.use_ssl,
                "starttls": False,
                "login": None,
                "quit": False,
            }
            recorder.connections.append(self.info)
            if recorder.fail_with is not None:
                raise recorder.fail_with

        def ehlo(self):
            return (250, b"ok")

        def has_extn(self, name):
            return recorder.offer_starttls and name.lower() == "starttls"

        def starttls(self, context=None):
            self.info["starttls"] = True

        def login(self, user, password):
            self.info["login"] = (user, password)

        def send_message(self, msg):
            if recorder.on_send is not None:
                recorder.on_send(msg)
            recorder.sent.append(msg)

        def quit(self):
            self.info["quit"] = True

        def close(self):
            pass

    class FakeSMTPSSL(FakeSMTP):
        use_ssl = True

    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTPSSL)
    return recorder


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def admin_params():
    return {"token": ADMIN_TOKEN}
