from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from fastapi import Request

from firepath.api.errors import ForbiddenError, InternalServerError, UnauthorizedError

API_V1_PREFIX = "/api/v1/"
PUBLIC_API_PATHS = {"/api/v1/healthz"}

_UNAUTHORIZED_TOKEN_ERRORS = {
    "InvalidIdTokenError",
    "ExpiredIdTokenError",
    "CertificateFetchError",
    "InvalidArgumentError",
    "ValueError",
}
_FORBIDDEN_TOKEN_ERRORS = {"RevokedIdTokenError", "UserDisabledError"}


class TokenVerifier(Protocol):
    def verify(self, token: str) -> Mapping[str, Any]:
        """Verify token and return decoded claims."""


class FirebaseAdminTokenVerifier:
    """Verify Firebase ID tokens with firebase-admin, initializing the default app lazily."""

    def __init__(self, *, check_revoked: bool = True) -> None:
        self._check_revoked = check_revoked
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        try:
            import firebase_admin
        except ModuleNotFoundError as exc:
            raise InternalServerError(
                "firebase-admin が未インストールです。`pip install -e '.[gcp]'` を実行してください。"
            ) from exc

        try:
            firebase_admin.get_app()
        except ValueError:
            firebase_admin.initialize_app()
        self._initialized = True

    def verify(self, token: str) -> Mapping[str, Any]:
        self._ensure_initialized()
        from firebase_admin import auth

        try:
            return dict(auth.verify_id_token(token, check_revoked=self._check_revoked))
        except Exception as exc:
            exc_name = exc.__class__.__name__
            if exc_name in _FORBIDDEN_TOKEN_ERRORS:
                raise ForbiddenError("このユーザーはAPIの利用が許可されていません。") from exc
            if exc_name in _UNAUTHORIZED_TOKEN_ERRORS:
                raise UnauthorizedError("IDトークンの検証に失敗しました。") from exc
            raise UnauthorizedError() from exc


@dataclass(frozen=True)
class AuthContext:
    uid: str
    claims: Mapping[str, Any]


def parse_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise UnauthorizedError("Authorization ヘッダーが必要です。")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Authorization ヘッダーは Bearer トークン形式で指定してください。")
    return token.strip()


def parse_allowed_uids(raw: str | None) -> frozenset[str] | None:
    values = frozenset(item.strip() for item in (raw or "").split(",") if item.strip())
    return values or None


def get_token_verifier(request: Request) -> TokenVerifier:
    verifier = getattr(request.app.state, "token_verifier", None)
    if verifier is None:
        verifier = FirebaseAdminTokenVerifier()
        request.app.state.token_verifier = verifier
    return verifier


def is_protected_path(path: str) -> bool:
    return path.startswith(API_V1_PREFIX) and path not in PUBLIC_API_PATHS


def authenticate_request(request: Request) -> AuthContext:
    token = parse_bearer_token(request.headers.get("Authorization"))
    claims = get_token_verifier(request).verify(token)
    uid = str(claims.get("uid", "")).strip()
    if not uid:
        raise UnauthorizedError("IDトークンにuidが含まれていません。")

    allowed_uids: frozenset[str] | None = getattr(request.app.state, "allowed_uids", None)
    if allowed_uids is not None and uid not in allowed_uids:
        raise ForbiddenError("このユーザーは許可されていません。")
    return AuthContext(uid=uid, claims=claims)
