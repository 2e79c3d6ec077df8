"""
Identity providers.

``FirebaseIdentityGateway`` talks to the Firebase Identity Toolkit REST API
with httpx. ``LocalIdentityGateway`` keeps werkzeug password hashes under
``credentials/`` in the document store for deployments without a hosted
provider.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from werkzeug.security import check_password_hash, generate_password_hash

from ..utils import new_id, to_iso, utc_now
from .store import DocumentStore

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Raised when the provider rejects a credential or an account operation."""

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or code)
        self.code = code


@dataclass
class IdentityAccount:
    uid: str
    email: str
    display_name: Optional[str] = None


class IdentityGateway:
    """Interface shared by identity backends."""

    async def sign_in(self, email: str, password: str) -> IdentityAccount:
        raise NotImplementedError

    async def create_account(self, email: str, password: str,
                             display_name: Optional[str] = None) -> IdentityAccount:
        raise NotImplementedError

    async def sign_out(self, uid: str) -> None:
        """Provider-side sign-out hook; sessions themselves are server records."""

    async def aclose(self) -> None:
        """Release provider resources."""


class FirebaseIdentityGateway(IdentityGateway):
    """Email/password accounts through the Identity Toolkit REST API."""

    BASE_URL = "https://identitytoolkit.googleapis.com/v1"

    def __init__(self, api_key: str, timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(base_url=self.BASE_URL, timeout=timeout)

    async def _call(self, endpoint: str, payload: dict) -> dict:
        try:
            response = await self._client.post(
                f"/accounts:{endpoint}",
                params={"key": self.api_key},
                json=payload
            )
        except httpx.HTTPError as e:
            logger.error(f"Identity service error: {e}")
            raise IdentityError("IDENTITY_UNAVAILABLE", "Identity service unavailable") from e

        data = response.json() if response.content else {}
        if response.status_code != 200:
            code = (data.get("error") or {}).get("message", "UNKNOWN")
            # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
            raise IdentityError(code.split(" : ")[0], code)
        return data

    async def sign_in(self, email: str, password: str) -> IdentityAccount:
        data = await self._call("signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True
        })
        return IdentityAccount(
            uid=data["localId"],
            email=data.get("email", email),
            display_name=data.get("displayName") or None
        )

    async def create_account(self, email: str, password: str,
                             display_name: Optional[str] = None) -> IdentityAccount:
        data = await self._call("signUp", {
            "email": email,
            "password": password,
            "returnSecureToken": True
        })
        if display_name:
            await self._call("update", {
                "idToken": data["idToken"],
                "displayName": display_name,
                "returnSecureToken": False
            })
        return IdentityAccount(uid=data["localId"], email=email, display_name=display_name)

    async def aclose(self) -> None:
        await self._client.aclose()


class LocalIdentityGateway(IdentityGateway):
    """Accounts stored in the document store with werkzeug password hashes."""

    MIN_PASSWORD_LENGTH = 6

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def _key(email: str) -> str:
        return hashlib.sha256(email.strip().lower().encode()).hexdigest()

    async def sign_in(self, email: str, password: str) -> IdentityAccount:
        record = await self.store.read(f"credentials/{self._key(email)}")
        if not record:
            raise IdentityError("INVALID_LOGIN_CREDENTIALS")
        if not check_password_hash(record["passwordHash"], password):
            raise IdentityError("INVALID_LOGIN_CREDENTIALS")
        return IdentityAccount(
            uid=record["uid"],
            email=record["email"],
            display_name=record.get("displayName")
        )

    async def create_account(self, email: str, password: str,
                             display_name: Optional[str] = None) -> IdentityAccount:
        if len(password or "") < self.MIN_PASSWORD_LENGTH:
            raise IdentityError(
                "WEAK_PASSWORD",
                f"Password should be at least {self.MIN_PASSWORD_LENGTH} characters"
            )
        path = f"credentials/{self._key(email)}"
        if await self.store.read(path):
            raise IdentityError("EMAIL_EXISTS", "The email address is already in use")

        account = IdentityAccount(uid=new_id("uid"), email=email.strip().lower(),
                                  display_name=display_name)
        await self.store.write(path, {
            "uid": account.uid,
            "email": account.email,
            "displayName": display_name,
            "passwordHash": generate_password_hash(password),
            "createdAt": to_iso(utc_now())
        })
        return account
