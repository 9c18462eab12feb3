import smtplib
from datetime import datetime, timezone

import pytest

from app.services.notifications import email_service
from app.services.notifications.dispatcher import NotificationDispatcher
from app.services.notifications.email_service import (
    EmailDestination,
    EmailService,
    TrackerEmailData,
    build_html_body,
    build_subject,
    build_text_body,
    format_destinations,
)
from conftest import FakeMailer


def sample_data(**overrides) -> TrackerEmailData:
    fields = dict(
        tracker_id="TRKABC1234567",
        trip_name="Cebu Adventure",
        destination="Cebu",
        traveler_name="Ana Santos",
        save_date=datetime(2025, 6, 5, 8, 30, tzinfo=timezone.utc),
        destinations=[
            EmailDestination(name="Magellan's Cross", city="Cebu City"),
            EmailDestination(name="Kawasan Falls"),
        ],
    )
    fields.update(overrides)
    return TrackerEmailData(**fields)


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None
        self.messages = []
        FakeSMTP.instances.append(self)

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def sendmail(self, sender, recipients, body):
        self.messages.append((sender, recipients, body))

    def noop(self):
        return (250, b"OK")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class BrokenSMTP(FakeSMTP):
    def sendmail(self, sender, recipients, body):
        raise smtplib.SMTPRecipientsRefused({recipients[0]: (550, b"mailbox unavailable")})


@pytest.fixture(autouse=True)
def reset_fake_smtp():
    FakeSMTP.instances = []


class TestMessageContent:
    def test_subject_names_tracker_and_trip(self):
        assert build_subject(sample_data()) == "🎯 Your Trip Tracker ID: TRKABC1234567 - Cebu Adventure"

    def test_subject_falls_back_to_destination(self):
        assert build_subject(sample_data(trip_name=None)).endswith("- Cebu")

    def test_destinations_are_numbered(self):
        assert format_destinations(sample_data().destinations) == (
            "1. Magellan's Cross - Cebu City\n2. Kawasan Falls - Unknown City"
        )
        assert format_destinations([]) == "No destinations added yet"

    def test_text_body(self):
        body = build_text_body(sample_data())
        assert "TRACKER ID: TRKABC1234567" in body
        assert "Hello Ana Santos!" in body
        assert "Saved Date: 06/05/2025" in body
        assert "2. Kawasan Falls - Unknown City" in body

    def test_html_body_escapes_user_input(self):
        html = build_html_body(sample_data(traveler_name="<script>alert(1)</script>"))
        assert "<script>" not in html
        assert "&lt;script&gt;" in html


class TestEmailService:
    def test_send_uses_starttls_and_login(self, monkeypatch):
        monkeypatch.setattr(email_service.smtplib, "SMTP", FakeSMTP)
        service = EmailService(host="smtp.test", port=587, user="bot@wertigo.com", password="pw",
                               use_ssl=False, sender="bot@wertigo.com", timeout=5)

        result = service.send("ana@example.com", sample_data())

        assert result.success is True
        assert result.message_id
        server = FakeSMTP.instances[0]
        assert server.started_tls is True
        assert server.logged_in == ("bot@wertigo.com", "pw")
        sender, recipients, _ = server.messages[0]
        assert sender == "bot@wertigo.com"
        assert recipients == ["ana@example.com"]

    def test_send_over_ssl(self, monkeypatch):
        monkeypatch.setattr(email_service.smtplib, "SMTP_SSL", FakeSMTP)
        service = EmailService(host="smtp.test", port=465, user="", password="",
                               use_ssl=True, sender="bot@wertigo.com", timeout=5)

        assert service.send("ana@example.com", sample_data()).success is True
        assert FakeSMTP.instances[0].started_tls is False
        assert FakeSMTP.instances[0].logged_in is None

    def test_transport_failure_is_reported_not_raised(self, monkeypatch):
        monkeypatch.setattr(email_service.smtplib, "SMTP", BrokenSMTP)
        service = EmailService(host="smtp.test", port=587, user="", password="",
                               use_ssl=False, sender="bot@wertigo.com", timeout=5)

        result = service.send("ana@example.com", sample_data())

        assert result.success is False
        assert result.error

    def test_message_headers(self):
        service = EmailService(sender="bot@wertigo.com")
        message = service.build_message("ana@example.com", sample_data())
        assert message["To"] == "ana@example.com"
        assert "bot@wertigo.com" in message["From"]
        assert message["Message-ID"].endswith("@wertigo.com>")


class TestDispatcher:
    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        mailer = FakeMailer(fail_times=2)
        dispatcher = NotificationDispatcher(mailer, max_attempts=3, min_wait=0, max_wait=0)

        result = await dispatcher.deliver("ana@example.com", sample_data())

        assert result.success is True
        assert mailer.attempts == 3
        assert len(mailer.sent) == 1

    @pytest.mark.asyncio
    async def test_gives_up_quietly(self):
        mailer = FakeMailer(fail_times=5)
        dispatcher = NotificationDispatcher(mailer, max_attempts=2, min_wait=0, max_wait=0)

        result = await dispatcher.deliver("ana@example.com", sample_data())

        assert result.success is False
        assert "535" in result.error
        assert mailer.attempts == 2

    @pytest.mark.asyncio
    async def test_transport_exceptions_are_contained(self):
        mailer = FakeMailer(fail_times=5, raises=True)
        dispatcher = NotificationDispatcher(mailer, max_attempts=2, min_wait=0, max_wait=0)

        result = await dispatcher.deliver("ana@example.com", sample_data())

        assert result.success is False
        assert mailer.attempts == 2
