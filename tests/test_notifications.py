from wisdom_api.services import notifications
from wisdom_api.services.mailer import Mailer


def test_verification_email_links_to_app(outbox):
    assert notifications.send_verification_email("a@example.com", "Ann", "ab" * 32)
    msg = outbox.last_to("a@example.com")
    assert msg["subject"] == "Verify Your Email - Wisdom Hub"
    assert "/auth/verify?token=" + "ab" * 32 in msg["text"]
    assert "Ann" in msg["html"]


def test_html_escapes_user_name(outbox):
    notifications.send_welcome_email("a@example.com", "<script>")
    assert "<script>" not in outbox.last_to("a@example.com")["html"]


def test_mail_failure_is_reported_not_raised(outbox):
    outbox.fail = True
    assert notifications.send_password_reset_email("a@example.com", "Ann", "cd" * 32) is False


def test_dev_mailer_logs_instead_of_sending(caplog):
    mailer = Mailer(host="")
    with caplog.at_level("INFO", logger="wisdom_api.services.mailer"):
        assert mailer.send("b@example.com", "Hello", "body text") is True
    assert "[DEV-MAIL]" in caplog.text


def test_build_message_sets_sender_and_alternative():
    mailer = Mailer(host="smtp.example.com", sender="no-reply@wisdomhub.app", sender_name="Wisdom Hub")
    msg = mailer.build_message("c@example.com", "Subject", "plain", "<p>html</p>")
    assert msg["From"] == "Wisdom Hub <no-reply@wisdomhub.app>"
    assert msg.is_multipart()
