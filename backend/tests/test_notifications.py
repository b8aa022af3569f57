import resend

from app.core.config import settings
from app.services.notifications import (
    samples_ready_html, send_request_confirmation, send_samples_ready
)


class TestSendRequestConfirmation:

    def test_sends_through_resend(self, sent_emails):
        result = send_request_confirmation("buyer@gmail.com", "Oak Bookshelf")

        assert result == {"success": True, "id": "email_1"}
        params = sent_emails[0]
        assert params["to"] == ["buyer@gmail.com"]
        assert params["from"] == f"Custom Furniture <noreply@{settings.RESEND_FROM_DOMAIN}>"
        assert "Oak Bookshelf" in params["subject"]
        assert "Oak Bookshelf" in params["html"]

    def test_skipped_without_api_key(self, sent_emails, monkeypatch):
        monkeypatch.setattr(settings, "RESEND_API_KEY", None)

        result = send_request_confirmation("buyer@gmail.com", "Oak Bookshelf")

        assert not result["success"]
        assert sent_emails == []

    def test_provider_error_is_reported_not_raised(self, sent_emails, monkeypatch):
        def send(params):
            raise RuntimeError("resend is down")

        monkeypatch.setattr(resend.Emails, "send", send)

        result = send_request_confirmation("buyer@gmail.com", "Oak Bookshelf")

        assert result == {"success": False, "error": "resend is down"}


class TestSamplesReady:

    def test_links_samples_and_request_page(self, sent_emails):
        send_samples_ready(
            "buyer@gmail.com", "req1", "Oak Bookshelf",
            {"color": "walnut"}, ["/uploads/samples/a.jpg", "https://cdn.test/b.jpg"],
        )

        html = sent_emails[0]["html"]
        assert "https://api.furniture.test/uploads/samples/a.jpg" in html
        assert "https://cdn.test/b.jpg" in html
        assert "https://furniture.test/custom-requests/req1" in html
        assert "walnut" in html

    def test_customer_text_is_escaped(self):
        html = samples_ready_html("req1", "<b>Shelf</b>", {"description": "<script>x</script>"}, [])

        assert "<script>" not in html
        assert "&lt;b&gt;Shelf&lt;/b&gt;" in html
