"""
Unit tests for QR code token issuance and resolution against in-memory storage
"""

import asyncio
from datetime import datetime, timedelta

import pytest

from app.config import get_settings
from app.services.qr_code_service import TokenIssuer, TokenResolver, is_demo_token
from app.utils.error_handler import (
    TokenExpiredError, TokenNotFoundError, UserNotFoundError, ValidationError
)

from conftest import run, pdf_payload

def create_user(repos, username="patient", role="patient"):
    return run(repos.users.create_user(
        username=username,
        hashed_password="$scrypt$ln=4,r=8,p=1$c2FsdA$a2V5",
        display_name=username.title(),
        role=role,
        email=f"{username}@example.com"
    ))

def add_document(repos, user_id, category_id, title, date="2024-01-15"):
    return run(repos.documents.create_document(
        user_id=user_id,
        category_id=category_id,
        title=title,
        file_data=pdf_payload(),
        date=date
    ))

class TestTokenIssuer:

    def test_issue_returns_unguessable_token_with_expiry(self, repos):
        user = create_user(repos)
        before = datetime.utcnow()

        qr_code = run(TokenIssuer(repos).issue(user.id))

        assert qr_code.user_id == user.id
        assert len(qr_code.token) == 32
        int(qr_code.token, 16)  # hex encoded
        assert qr_code.document_id is None
        assert before + timedelta(days=30) <= qr_code.expires_at <= datetime.utcnow() + timedelta(days=30)

    def test_issue_unknown_user_fails(self, repos):
        with pytest.raises(UserNotFoundError):
            run(TokenIssuer(repos).issue(999))

    @pytest.mark.parametrize("user_id", [0, -3, "1", None, True])
    def test_issue_rejects_malformed_user_id(self, repos, user_id):
        create_user(repos)
        with pytest.raises(ValidationError):
            run(TokenIssuer(repos).issue(user_id))

    def test_reissue_invalidates_previous_token(self, repos):
        user = create_user(repos)
        issuer = TokenIssuer(repos)
        resolver = TokenResolver(repos)

        first = run(issuer.issue(user.id))
        second = run(issuer.issue(user.id))

        assert first.token != second.token
        with pytest.raises(TokenNotFoundError):
            run(resolver.resolve(first.token))
        assert run(resolver.resolve(second.token)).user.id == user.id

    def test_reissue_for_one_user_leaves_other_users_alone(self, repos):
        alice = create_user(repos, "alice")
        bob = create_user(repos, "bob")
        issuer = TokenIssuer(repos)

        bob_token = run(issuer.issue(bob.id))
        run(issuer.issue(alice.id))
        run(issuer.issue(alice.id))

        assert run(TokenResolver(repos).resolve(bob_token.token)).user.id == bob.id

    def test_concurrent_issuance_leaves_exactly_one_live_token(self, repos):
        user = create_user(repos)
        issuer = TokenIssuer(repos)
        resolver = TokenResolver(repos)

        async def race():
            return await asyncio.gather(issuer.issue(user.id), issuer.issue(user.id))

        first, second = run(race())

        live = []
        for qr_code in (first, second):
            try:
                run(resolver.resolve(qr_code.token))
                live.append(qr_code.token)
            except TokenNotFoundError:
                pass
        assert len(live) == 1

    def test_current_or_issue_returns_live_token(self, repos):
        user = create_user(repos)
        issuer = TokenIssuer(repos)

        first = run(issuer.current_or_issue(user.id))
        again = run(issuer.current_or_issue(user.id))

        assert again.token == first.token

    def test_current_or_issue_replaces_expired_token(self, repos):
        user = create_user(repos)
        stale = run(repos.tokens.create(user.id, "a" * 32, datetime.utcnow() - timedelta(seconds=1)))

        fresh = run(TokenIssuer(repos).current_or_issue(user.id))

        assert fresh.token != stale.token
        assert run(repos.tokens.get_by_token(stale.token)) is None

    def test_custom_ttl(self, repos):
        user = create_user(repos)
        now = datetime(2024, 3, 1, 12, 0, 0)

        qr_code = run(TokenIssuer(repos, ttl_days=7, clock=lambda: now).issue(user.id))

        assert qr_code.expires_at == datetime(2024, 3, 8, 12, 0, 0)

class TestTokenResolver:

    def test_round_trip_returns_owner_and_exactly_their_documents(self, repos):
        user = create_user(repos)
        other = create_user(repos, "other")
        category = run(repos.categories.create_category(user.id, "Lab Reports"))
        other_category = run(repos.categories.create_category(other.id, "Lab Reports"))
        mine = {add_document(repos, user.id, category.id, "Blood panel").id,
                add_document(repos, user.id, category.id, "Lipids").id}
        add_document(repos, other.id, other_category.id, "Not yours")

        qr_code = run(TokenIssuer(repos).issue(user.id))
        record = run(TokenResolver(repos).resolve(qr_code.token))

        assert record.user.id == user.id
        assert {document.id for document in record.documents} == mine

    def test_resolve_is_read_only_for_category_counts(self, repos):
        user = create_user(repos)
        labs = run(repos.categories.create_category(user.id, "Lab Reports"))
        scans = run(repos.categories.create_category(user.id, "X-Rays"))
        add_document(repos, user.id, labs.id, "Blood panel")
        add_document(repos, user.id, labs.id, "Lipids")
        add_document(repos, user.id, scans.id, "Chest X-ray")

        qr_code = run(TokenIssuer(repos).issue(user.id))
        record = run(TokenResolver(repos).resolve(qr_code.token))

        assert len(record.documents) == 3
        counts = {c.name: c.count for c in run(repos.categories.get_categories(user.id))}
        assert counts == {"Lab Reports": 2, "X-Rays": 1}

    def test_resolved_user_has_no_credential(self, repos):
        user = create_user(repos)
        qr_code = run(TokenIssuer(repos).issue(user.id))

        record = run(TokenResolver(repos).resolve(qr_code.token))
        dumped = record.model_dump(by_alias=True)

        assert not hasattr(record.user, "hashed_password")
        assert "hashed_password" not in dumped["user"]
        assert "password" not in dumped["user"]
        assert dumped["user"]["displayName"] == "Patient"

    def test_expired_token_fails_with_expired(self, repos):
        user = create_user(repos)
        run(repos.tokens.create(user.id, "b" * 32, datetime.utcnow() - timedelta(seconds=1)))

        with pytest.raises(TokenExpiredError) as exc_info:
            run(TokenResolver(repos).resolve("b" * 32))
        assert exc_info.value.status_code == 410

    def test_token_without_expiry_never_expires(self, repos):
        user = create_user(repos)
        run(repos.tokens.create(user.id, "c" * 32, None))

        assert run(TokenResolver(repos).resolve("c" * 32)).user.id == user.id

    def test_token_resolves_until_expiry(self, repos):
        user = create_user(repos)
        issued_at = datetime(2024, 1, 1)
        qr_code = run(TokenIssuer(repos, clock=lambda: issued_at).issue(user.id))

        day_29 = TokenResolver(repos, clock=lambda: issued_at + timedelta(days=29))
        day_31 = TokenResolver(repos, clock=lambda: issued_at + timedelta(days=31))

        assert run(day_29.resolve(qr_code.token)).user.id == user.id
        assert run(day_29.resolve(qr_code.token)).user.id == user.id  # reusable
        with pytest.raises(TokenExpiredError):
            run(day_31.resolve(qr_code.token))

    @pytest.mark.parametrize("token", ["unknown", "", "0" * 32])
    def test_unknown_token_fails_with_not_found(self, repos, token):
        create_user(repos)
        with pytest.raises(TokenNotFoundError) as exc_info:
            run(TokenResolver(repos).resolve(token))
        assert exc_info.value.status_code == 404

    def test_resolve_survives_lowered_upload_limit(self, repos, monkeypatch):
        user = create_user(repos)
        category = run(repos.categories.create_category(user.id, "Lab Reports"))
        run(repos.documents.create_document(
            user_id=user.id,
            category_id=category.id,
            title="Full report",
            file_data=pdf_payload(b"%" * 100),
            date="2024-01-15"
        ))
        qr_code = run(TokenIssuer(repos).issue(user.id))

        monkeypatch.setattr(get_settings(), "max_upload_bytes", 50)

        record = run(TokenResolver(repos).resolve(qr_code.token))
        assert record.documents[0].file_data.size_bytes == 100

    def test_orphaned_token_fails_with_user_not_found(self, repos):
        run(repos.tokens.create(42, "d" * 32, datetime.utcnow() + timedelta(days=1)))

        with pytest.raises(UserNotFoundError):
            run(TokenResolver(repos).resolve("d" * 32))

class TestDemoTokens:

    def test_is_demo_token(self):
        assert is_demo_token("patient-qr-code") == 1
        assert is_demo_token("patient-qr-code", demo_user_id=5) == 5
        assert is_demo_token("patient-qr-code-7") == 7
        assert is_demo_token("patient-qr-code-0") is None
        assert is_demo_token("patient-qr-code-abc") is None
        assert is_demo_token("patient-qr-code-7-8") is None
        assert is_demo_token("PATIENT-QR-CODE") is None
        assert is_demo_token("") is None
        assert is_demo_token("f" * 32) is None

    def test_demo_token_ignored_when_disabled(self, repos):
        create_user(repos)
        with pytest.raises(TokenNotFoundError):
            run(TokenResolver(repos, demo_tokens_enabled=False).resolve("patient-qr-code"))

    def test_demo_token_resolves_seeded_user_when_enabled(self, repos):
        user = create_user(repos)
        record = run(TokenResolver(repos, demo_tokens_enabled=True).resolve("patient-qr-code"))
        assert record.user.id == user.id

    def test_demo_token_for_missing_user(self, repos):
        with pytest.raises(UserNotFoundError):
            run(TokenResolver(repos, demo_tokens_enabled=True).resolve("patient-qr-code-9"))

    def test_stored_token_wins_over_demo_rule(self, repos):
        create_user(repos, "first")
        second = create_user(repos, "second")
        # a real token that happens to look like a demo token for user 1
        run(repos.tokens.create(second.id, "patient-qr-code-1", datetime.utcnow() + timedelta(days=1)))

        record = run(TokenResolver(repos, demo_tokens_enabled=True).resolve("patient-qr-code-1"))
        assert record.user.id == second.id

    def test_expired_stored_token_does_not_fall_back_to_demo(self, repos):
        create_user(repos)
        second = create_user(repos, "second")
        run(repos.tokens.create(second.id, "patient-qr-code", datetime.utcnow() - timedelta(seconds=1)))

        with pytest.raises(TokenExpiredError):
            run(TokenResolver(repos, demo_tokens_enabled=True).resolve("patient-qr-code"))
