"""
Tests for account activation.

An expired code reissues exactly one new code and leaves the identity
disabled; only the newest code is ever usable.
"""

import pytest

from booknet.core.errors import ActivationTokenExpiredError, InvalidActivationTokenError
from booknet.integrations import email


class TestIssue:
    @pytest.mark.asyncio
    async def test_send_mails_the_code(self, activation, mailer, make_identity):
        identity = await make_identity(enabled=False)
        
        token = await activation.send(identity)
        await email.drain()
        
        assert len(token.token) == 6
        assert token.token.isdigit()
        assert mailer.sent == [{"email": identity.email, "name": "Alice Tester", "code": token.token}]

    @pytest.mark.asyncio
    async def test_new_code_invalidates_old(self, activation, clock, make_identity):
        identity = await make_identity(enabled=False)
        first = await activation.issue(identity)
        clock.advance(minutes=1)
        second = await activation.issue(identity)
        
        tokens = await activation.tokens_for(identity.id)
        
        assert [t.id for t in tokens] == [first.id, second.id]
        assert tokens[0].invalidated_at == clock.now
        assert tokens[1].is_usable
        with pytest.raises(InvalidActivationTokenError):
            await activation.activate(first.token)


class TestActivate:
    @pytest.mark.asyncio
    async def test_valid_code_enables_identity(self, activation, users, make_identity):
        identity = await make_identity(enabled=False)
        token = await activation.issue(identity)
        
        activated = await activation.activate(token.token)
        
        assert activated.enabled
        assert (await users.get_by_id(identity.id)).enabled
        (stored,) = await activation.tokens_for(identity.id)
        assert stored.validated_at is not None

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, activation, make_identity):
        identity = await make_identity(enabled=False)
        token = await activation.issue(identity)
        await activation.activate(token.token)
        
        with pytest.raises(InvalidActivationTokenError):
            await activation.activate(token.token)

    @pytest.mark.asyncio
    async def test_unknown_code(self, activation):
        with pytest.raises(InvalidActivationTokenError):
            await activation.activate("000000")

    @pytest.mark.asyncio
    async def test_still_valid_just_before_expiry(self, activation, clock, make_identity):
        identity = await make_identity(enabled=False)
        token = await activation.issue(identity)
        clock.advance(minutes=15, milliseconds=-1)
        
        assert (await activation.activate(token.token)).enabled


class TestExpiredCode:
    @pytest.mark.asyncio
    async def test_expired_code_reissues_exactly_one(self, activation, users, mailer, clock, make_identity):
        identity = await make_identity(enabled=False)
        old = await activation.send(identity)
        clock.advance(minutes=15)
        
        with pytest.raises(ActivationTokenExpiredError) as exc:
            await activation.activate(old.token)
        await email.drain()
        
        assert "new token has been sent" in exc.value.message
        tokens = await activation.tokens_for(identity.id)
        assert len(tokens) == 2
        assert [t.is_usable for t in tokens] == [False, True]
        assert tokens[0].validated_at is None
        assert not (await users.get_by_id(identity.id)).enabled
        assert [m["code"] for m in mailer.sent] == [old.token, tokens[1].token]

    @pytest.mark.asyncio
    async def test_replacement_code_activates(self, activation, clock, make_identity):
        identity = await make_identity(enabled=False)
        old = await activation.issue(identity)
        clock.advance(minutes=20)
        with pytest.raises(ActivationTokenExpiredError):
            await activation.activate(old.token)
        await email.drain()
        
        replacement = (await activation.tokens_for(identity.id))[-1]
        
        assert (await activation.activate(replacement.token)).enabled


class TestDispatch:
    @pytest.mark.asyncio
    async def test_failures_are_logged_not_raised(self, caplog):
        async def boom():
            raise RuntimeError("smtp down")
        
        email.dispatch(boom(), name="failing-send")
        await email.drain()
        
        assert "failing-send" in caplog.text

    @pytest.mark.asyncio
    async def test_unconfigured_service_reports_not_sent(self, settings):
        service = email.EmailService(settings)
        
        assert not service.is_configured
        assert await service.send_activation("a@example.com", "A", "123456") is False
        assert await service.send("a@example.com", "no_such_template") is False
