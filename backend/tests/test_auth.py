"""
Tests for wallet authentication.

Tests: JWT helpers, require_authenticated_wallet, and the signature
challenge/verify flow with real algosdk keys.
"""
import pytest
from datetime import datetime, timedelta
from fastapi import HTTPException
from sqlalchemy import select

from algosdk import util as algo_util

from db_models import AuthChallenge
from domain.errors import InvalidChallengeError, InvalidSignatureError
from services import auth_service
from middleware.auth import (
    decode_access_token,
    issue_access_token,
    require_authenticated_wallet,
)


class TestAccessTokens:

    @pytest.mark.unit
    def test_issue_and_decode_round_trip(self, alice):
        token = issue_access_token(wallet_address=alice, role="holder")
        payload = decode_access_token(token)
        assert payload.wallet == alice
        assert payload.role == "holder"

    @pytest.mark.unit
    def test_decode_garbage_raises_401(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_access_token("definitely.not.valid")
        assert exc_info.value.status_code == 401

    @pytest.mark.unit
    def test_decode_expired_raises_401(self, alice, monkeypatch):
        from config import settings
        monkeypatch.setattr(settings, "jwt_access_ttl_minutes", -1)
        token = issue_access_token(wallet_address=alice, role="holder")
        with pytest.raises(HTTPException) as exc_info:
            decode_access_token(token)
        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.detail.lower()


class TestRequireAuthenticatedWallet:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bearer_token_returns_wallet(self, alice):
        token = issue_access_token(wallet_address=alice, role="holder")
        wallet = await require_authenticated_wallet(authorization=f"Bearer {token}")
        assert wallet == alice

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_header_raises_401(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_authenticated_wallet(authorization=None)
        assert exc_info.value.status_code == 401
        assert "Authentication required" in exc_info.value.detail

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_bearer_scheme_raises_401(self, alice):
        with pytest.raises(HTTPException) as exc_info:
            await require_authenticated_wallet(authorization=f"Basic {alice}")
        assert exc_info.value.status_code == 401


class TestChallengeFlow:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_challenge(self, client, db_session, alice):
        response = await client.post("/auth/challenge", json={"walletAddress": alice})

        assert response.status_code == 200
        data = response.json()
        assert data["walletAddress"] == alice
        assert data["nonce"]
        assert "authentication" in data["message"]

        result = await db_session.execute(
            select(AuthChallenge).where(AuthChallenge.wallet_address == alice)
        )
        assert result.scalar_one().nonce == data["nonce"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_valid_signature_as_admin(self, client, registry, admin_account):
        private_key, wallet = admin_account
        challenge = (await client.post("/auth/challenge", json={"walletAddress": wallet})).json()
        signature = algo_util.sign_bytes(challenge["nonce"].encode("utf-8"), private_key)

        response = await client.post(
            "/auth/verify",
            json={"walletAddress": wallet, "nonce": challenge["nonce"], "signature": signature},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "admin"
        assert decode_access_token(data["accessToken"]).wallet == wallet

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_holder_role(self, client, registry, new_account):
        private_key, wallet = new_account()
        challenge = (await client.post("/auth/challenge", json={"walletAddress": wallet})).json()
        signature = algo_util.sign_bytes(challenge["nonce"].encode("utf-8"), private_key)

        response = await client.post(
            "/auth/verify",
            json={"walletAddress": wallet, "nonce": challenge["nonce"], "signature": signature},
        )
        assert response.json()["role"] == "holder"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_verify_signature_from_other_key(self, client, new_account):
        _, wallet = new_account()
        other_key, _ = new_account()
        challenge = (await client.post("/auth/challenge", json={"walletAddress": wallet})).json()
        signature = algo_util.sign_bytes(challenge["nonce"].encode("utf-8"), other_key)

        response = await client.post(
            "/auth/verify",
            json={"walletAddress": wallet, "nonce": challenge["nonce"], "signature": signature},
        )
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_nonce_cannot_be_reused(self, client, new_account):
        private_key, wallet = new_account()
        challenge = (await client.post("/auth/challenge", json={"walletAddress": wallet})).json()
        signature = algo_util.sign_bytes(challenge["nonce"].encode("utf-8"), private_key)
        body = {"walletAddress": wallet, "nonce": challenge["nonce"], "signature": signature}

        first = await client.post("/auth/verify", json=body)
        second = await client.post("/auth/verify", json=body)

        assert first.status_code == 200
        assert second.status_code == 400

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_expired_nonce_rejected(self, client, db_session, new_account):
        private_key, wallet = new_account()
        nonce = "expired-nonce-0123456789"
        db_session.add(
            AuthChallenge(
                wallet_address=wallet,
                nonce=nonce,
                expires_at=datetime.utcnow() - timedelta(minutes=1),
            )
        )
        await db_session.commit()
        signature = algo_util.sign_bytes(nonce.encode("utf-8"), private_key)

        response = await client.post(
            "/auth/verify",
            json={"walletAddress": wallet, "nonce": nonce, "signature": signature},
        )
        assert response.status_code == 400
        assert "expired" in response.json()["error"]["message"].lower()

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_challenge_reports_remaining_quota(self, client, alice):
        first = await client.post("/auth/challenge", json={"walletAddress": alice})
        second = await client.post("/auth/challenge", json={"walletAddress": alice})

        assert first.headers["X-RateLimit-Limit"] == "20"
        assert first.headers["X-RateLimit-Remaining"] == "19"
        assert second.headers["X-RateLimit-Remaining"] == "18"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_challenge_rate_limited(self, client, alice):
        statuses = []
        for _ in range(21):
            response = await client.post("/auth/challenge", json={"walletAddress": alice})
            statuses.append(response.status_code)

        assert statuses[:20] == [200] * 20
        assert statuses[20] == 429


class TestAuthService:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_challenge_expires_after_ttl(self, db_session, alice):
        from config import settings
        challenge = await auth_service.create_challenge(db_session, alice)

        ttl = challenge.expires_at - datetime.utcnow()
        assert timedelta(0) < ttl <= timedelta(minutes=settings.auth_challenge_ttl_minutes)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_nonce_bound_to_requesting_wallet(self, db_session, new_account):
        _, wallet = new_account()
        other_key, other_wallet = new_account()
        challenge = await auth_service.create_challenge(db_session, wallet)
        signature = algo_util.sign_bytes(challenge.nonce.encode("utf-8"), other_key)

        with pytest.raises(InvalidChallengeError):
            await auth_service.verify_challenge(db_session, other_wallet, challenge.nonce, signature)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failed_signature_leaves_nonce_usable(self, db_session, new_account):
        private_key, wallet = new_account()
        other_key, _ = new_account()
        challenge = await auth_service.create_challenge(db_session, wallet)
        nonce_bytes = challenge.nonce.encode("utf-8")

        with pytest.raises(InvalidSignatureError):
            await auth_service.verify_challenge(
                db_session, wallet, challenge.nonce, algo_util.sign_bytes(nonce_bytes, other_key)
            )

        issued = await auth_service.verify_challenge(
            db_session, wallet, challenge.nonce, algo_util.sign_bytes(nonce_bytes, private_key)
        )
        assert issued.role == auth_service.ROLE_HOLDER
        assert challenge.used_at is not None
