"""
Tests for local credentials and the session provider.
"""
import json
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from obra_dashboard.auth import (
    AuthError, INVALID_CREDENTIALS_MESSAGE, LocalCredentialService, Session, SessionProvider,
    hash_password, verify_password,
)


@pytest.fixture
def credentials(tmp_path):
    service = LocalCredentialService(tmp_path / "users.json")
    service.add_user("Residente@Obra.pe", "clave-segura")
    return service


class TestPasswords:

    def test_hash_verifies(self):
        hashed = hash_password("secreto")

        assert hashed != "secreto"
        assert verify_password("secreto", hashed)
        assert not verify_password("otro", hashed)


class TestLocalCredentialService:

    def test_sign_in_is_case_insensitive_on_email(self, credentials):
        session = credentials.sign_in("residente@obra.pe", "clave-segura")

        assert session.email == "residente@obra.pe"
        assert session.uid

    def test_wrong_password(self, credentials):
        with pytest.raises(AuthError, match=INVALID_CREDENTIALS_MESSAGE):
            credentials.sign_in("residente@obra.pe", "incorrecta")

    def test_unknown_user(self, credentials):
        with pytest.raises(AuthError):
            credentials.sign_in("nadie@obra.pe", "clave-segura")

    @pytest.mark.parametrize("record", [
        {"uid": "u1", "email": "a@b.c", "password_hash": "plain"},
        {"uid": "u1", "email": "a@b.c"},
        {"email": "a@b.c", "password_hash": None},
    ])
    def test_broken_user_record_is_a_failed_login(self, tmp_path, record):
        users_path = tmp_path / "users.json"
        users_path.write_text(json.dumps({"users": [record]}), encoding="utf-8")

        with pytest.raises(AuthError, match=INVALID_CREDENTIALS_MESSAGE):
            LocalCredentialService(users_path).sign_in("a@b.c", "x")

    def test_record_without_uid_is_a_failed_login(self, tmp_path):
        users_path = tmp_path / "users.json"
        record = {"email": "a@b.c", "password_hash": hash_password("x")}
        users_path.write_text(json.dumps({"users": [record]}), encoding="utf-8")

        with pytest.raises(AuthError, match=INVALID_CREDENTIALS_MESSAGE):
            LocalCredentialService(users_path).sign_in("a@b.c", "x")

    def test_file_stores_hashes_only(self, credentials):
        payload = json.loads(credentials.users_path.read_text(encoding="utf-8"))

        assert len(payload["users"]) == 1
        assert "clave-segura" not in credentials.users_path.read_text(encoding="utf-8")

    def test_add_existing_user_resets_password(self, credentials):
        uid = credentials.find("residente@obra.pe")["uid"]
        session = credentials.add_user("residente@obra.pe", "nueva-clave")

        assert session.uid == uid
        assert credentials.sign_in("residente@obra.pe", "nueva-clave").uid == uid

    def test_blank_credentials_rejected(self, credentials):
        with pytest.raises(AuthError):
            credentials.add_user("", "x")

    def test_unreadable_users_file(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(AuthError):
            LocalCredentialService(path).sign_in("a@b.pe", "x")


class FailingSignOut:

    def sign_in(self, email, password):
        return Session(uid="u1", email=email)

    def sign_out(self, session):
        raise AuthError("")


class TestSessionProvider:

    def test_listener_called_immediately(self, credentials):
        provider = SessionProvider(credentials)
        seen = []

        provider.on_session_change(seen.append)

        assert seen == [None]

    def test_login_and_logout_notify(self, credentials):
        provider = SessionProvider(credentials)
        seen = []
        provider.on_session_change(seen.append)

        session = provider.login("residente@obra.pe", "clave-segura")
        provider.logout()

        assert seen == [None, session, None]
        assert provider.current is None

    def test_failed_login_keeps_session_and_sets_error(self, credentials):
        provider = SessionProvider(credentials)
        seen = []
        provider.on_session_change(seen.append)

        with pytest.raises(AuthError):
            provider.login("residente@obra.pe", "incorrecta")

        assert provider.current is None
        assert provider.error == INVALID_CREDENTIALS_MESSAGE
        assert seen == [None]

    def test_unsubscribe(self, credentials):
        provider = SessionProvider(credentials)
        seen = []
        unsubscribe = provider.on_session_change(seen.append)
        unsubscribe()
        unsubscribe()

        provider.login("residente@obra.pe", "clave-segura")
        assert seen == [None]

    def test_failed_logout_keeps_session(self):
        provider = SessionProvider(FailingSignOut())
        provider.login("a@b.pe", "x")

        with pytest.raises(AuthError, match="Error al cerrar sesión"):
            provider.logout()

        assert provider.current is not None

    def test_logout_without_session_is_noop(self, credentials):
        SessionProvider(credentials).logout()
