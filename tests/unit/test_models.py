"""Unit tests for email value objects."""

import dataclasses

import pytest

from microsoft365_mailer.email.models import Address, Attachment, Email, Envelope, SentMessage


@pytest.mark.unit
class TestAddress:
    def test_parse_with_name(self):
        address = Address.parse("John Doe <john@example.com>")

        assert address == Address("john@example.com", "John Doe")
        assert address.domain == "example.com"

    def test_parse_bare_address(self):
        assert Address.parse("john@example.com") == Address("john@example.com")

    def test_equality_includes_name(self):
        assert Address("john@example.com", "John") != Address("john@example.com")

    def test_str(self):
        assert str(Address("john@example.com", "John")) == "John <john@example.com>"
        assert str(Address("john@example.com")) == "john@example.com"


@pytest.mark.unit
class TestAttachment:
    def test_from_content_type(self):
        attachment = Attachment.from_content_type(b"abc", "a.png", "image/png")

        assert attachment.media_type == "image"
        assert attachment.media_subtype == "png"
        assert attachment.content_type == "image/png"
        assert attachment.size == 3

    def test_repr_hides_content(self):
        attachment = Attachment(b"secret", filename="a.txt")
        assert "secret" not in repr(attachment)


@pytest.mark.unit
class TestEmail:
    def test_addresses_normalised_to_tuples(self):
        email = Email(
            from_=["Jane <jane@example.com>"],
            to=[Address("to@example.com")],
            cc=["cc@example.com"],
        )

        assert email.from_ == (Address("jane@example.com", "Jane"),)
        assert email.to == (Address("to@example.com"),)
        assert email.cc == (Address("cc@example.com"),)
        assert email.bcc == ()

    def test_is_immutable(self, sample_email):
        with pytest.raises(dataclasses.FrozenInstanceError):
            sample_email.subject = "changed"


@pytest.mark.unit
class TestEnvelope:
    def test_from_email_uses_first_from_and_all_recipients(self):
        email = Email(
            from_=[Address("from@example.com", "From"), Address("other@example.com")],
            to=[Address("to@example.com", "To")],
            cc=[Address("cc@example.com")],
            bcc=[Address("bcc@example.com"), Address("to@example.com", "To")],
            reply_to=[Address("reply@example.com")],
        )

        envelope = Envelope.from_email(email)

        assert envelope.sender == Address("from@example.com", "From")
        assert envelope.recipients == (
            Address("to@example.com", "To"),
            Address("cc@example.com"),
            Address("bcc@example.com"),
        )

    def test_from_email_prefers_sender(self):
        email = Email(
            from_=[Address("from@example.com")],
            sender=Address("sender@example.org"),
            to=[Address("to@example.com")],
        )

        assert Envelope.from_email(email).sender == Address("sender@example.org")

    def test_requires_recipients(self):
        email = Email(from_=[Address("from@example.com")])

        with pytest.raises(ValueError, match="at least one recipient"):
            Envelope.from_email(email)

    def test_requires_sender(self):
        with pytest.raises(ValueError, match="sender"):
            Envelope.from_email(Email(to=[Address("to@example.com")]))


@pytest.mark.unit
class TestSentMessage:
    def test_message_id_is_generated_for_sender_domain(self, sample_email):
        sent = SentMessage(sample_email, Envelope.from_email(sample_email))

        local, _, domain = sent.message_id.partition("@")
        assert domain == "example.com"
        assert len(local) == 32

    def test_message_id_taken_from_email(self, sample_email):
        email = dataclasses.replace(sample_email, message_id="<abc@example.org>")

        sent = SentMessage(email, Envelope.from_email(email))

        assert sent.message_id == "<abc@example.org>"
