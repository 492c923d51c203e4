"""Unit tests for VerificationService (store + email delivery)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from errors import EmailDeliveryError
from schemas.models.results import Cooldown, Invalid, NoSession, Resent, Success
from services.verification_service import VerificationService

EMAIL = "alice@example.com"


@pytest.fixture
def provider():
    mock = AsyncMock()
    mock.send_verification_email.return_value = True
    return mock


@pytest.fixture
def service(store, provider):
    return VerificationService(store, provider)


class TestSendCode:
    async def test_mails_the_issued_code(self, service, provider):
        expires_in = await service.send_code(EMAIL)

        assert expires_in == 300
        provider.send_verification_email.assert_awaited_once_with(EMAIL, "111111", 5)

    async def test_normalizes_the_recipient(self, service, provider):
        await service.send_code("  Alice@Example.COM ")
        args = provider.send_verification_email.await_args.args
        assert args[0] == EMAIL

    async def test_delivery_failure_raises_and_keeps_session(
        self, service, provider, store
    ):
        provider.send_verification_email.return_value = False

        with pytest.raises(EmailDeliveryError):
            await service.send_code(EMAIL)

        # The code was issued; a resend can still deliver it
        assert await store.lookup(EMAIL) is not None

    async def test_minutes_rounded_up(self, make_store, provider):
        service = VerificationService(
            make_store(verification_code_ttl_seconds=90), provider
        )
        await service.send_code(EMAIL)
        assert provider.send_verification_email.await_args.args[2] == 2


class TestResendCode:
    async def test_no_session_sends_nothing(self, service, provider):
        assert await service.resend_code(EMAIL) == NoSession()
        provider.send_verification_email.assert_not_awaited()

    async def test_cooldown_sends_nothing(self, service, provider):
        await service.send_code(EMAIL)
        assert isinstance(await service.resend_code(EMAIL), Resent)
        provider.send_verification_email.reset_mock()

        result = await service.resend_code(EMAIL)

        assert isinstance(result, Cooldown)
        provider.send_verification_email.assert_not_awaited()

    async def test_resent_mails_the_new_code(self, service, provider, clock):
        await service.send_code(EMAIL)
        clock.advance(seconds=61)

        result = await service.resend_code("ALICE@example.com")

        assert isinstance(result, Resent)
        provider.send_verification_email.assert_awaited_with(EMAIL, "222222", 5)

    async def test_resend_delivery_failure_keeps_previous_code(
        self, service, provider, store
    ):
        await service.send_code(EMAIL)
        before = await store.lookup(EMAIL)
        provider.send_verification_email.return_value = False

        with pytest.raises(EmailDeliveryError):
            await service.resend_code(EMAIL)

        after = await store.lookup(EMAIL)
        assert after.resend_count == 0
        assert after.last_resend_at is None
        assert after.code_hash == before.code_hash
        assert after.expires_at == before.expires_at
        assert (await service.status(EMAIL)).can_resend is True
        # The code that did reach the inbox still verifies
        assert await service.verify_code(EMAIL, "111111") == Success()

    async def test_retry_after_failed_resend_is_not_throttled(self, service, provider):
        await service.send_code(EMAIL)
        provider.send_verification_email.return_value = False
        with pytest.raises(EmailDeliveryError):
            await service.resend_code(EMAIL)

        provider.send_verification_email.return_value = True
        result = await service.resend_code(EMAIL)

        assert isinstance(result, Resent)
        assert (await service.status(EMAIL)).resend_count == 1


class TestVerifyCode:
    async def test_passes_through_to_store(self, service):
        await service.send_code(EMAIL)
        assert await service.verify_code(EMAIL, "000000") == Invalid(remaining=2)
        assert await service.verify_code(EMAIL, "111111") == Success()

    async def test_records_origin_metadata(self, service, store):
        await service.send_code(EMAIL)
        await service.verify_code(EMAIL, "000000", origin_ip="1.2.3.4", user_agent="UA")

        attempt = (await store.lookup(EMAIL)).attempts[0]
        assert attempt.origin_ip == "1.2.3.4"
        assert attempt.user_agent == "UA"


class TestStatus:
    async def test_no_session(self, service):
        stats = await service.status(EMAIL)
        assert stats.exists is False

    async def test_live_session(self, service):
        await service.send_code(EMAIL)
        stats = await service.status(EMAIL)
        assert stats.exists is True
        assert stats.time_remaining == 300
        assert stats.attempts_remaining == 3

    def test_code_ttl_seconds(self, service):
        assert service.code_ttl_seconds == 300
