"""
HTTP Basic authentication for route groups.

Provides:
- BasicAuth: dependency checking credentials against a fixed account table
- Request context enrichment with the authenticated user name
- Helpers reading the authenticated user back from the request
"""

import secrets
from typing import Dict, Optional

import structlog
from fastapi import HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

logger = structlog.get_logger(__name__)

# Key under which the authenticated user name is stored on request.state
AUTH_USER_KEY = "user"


class BasicAuth:
    """
    Dependency authenticating requests with HTTP Basic credentials.

    Attach it to a router to protect every route in the group:

        router = APIRouter(dependencies=[Depends(BasicAuth({"user": "pass"}))])

    On success the user name is stored on ``request.state.user``. On failure
    the request is rejected with 401 and a Basic challenge for ``realm``.
    """

    def __init__(self, accounts: Dict[str, str], realm: str = "Authorization Required"):
        """
        Initialize basic auth.

        Args:
            accounts: Mapping of user name to password
            realm: Realm announced in the WWW-Authenticate header

        Raises:
            ValueError: If the account table is empty or has a blank user
        """
        if not accounts:
            raise ValueError("BasicAuth requires at least one account")
        if any(not user for user in accounts):
            raise ValueError("BasicAuth user names must not be empty")

        self.accounts = dict(accounts)
        self.realm = realm
        self._scheme = HTTPBasic(auto_error=False)

    @property
    def challenge(self) -> str:
        realm = self.realm.replace("\\", "\\\\").replace('"', '\\"')
        return f'Basic realm="{realm}"'

    async def __call__(self, request: Request) -> str:
        """
        Authenticate the request.

        Returns:
            Authenticated user name

        Raises:
            HTTPException: 401 when credentials are missing or wrong
        """
        try:
            credentials = await self._scheme(request)
        except HTTPException:
            # Malformed Authorization header
            credentials = None

        user = self.search_credential(credentials)

        if user is None:
            logger.warning(
                "basic_auth_failed",
                path=request.url.path,
                method=request.method,
                client=request.client.host if request.client else None,
                username=credentials.username if credentials else None
            )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": self.challenge}
            )

        setattr(request.state, AUTH_USER_KEY, user)
        logger.info(
            "request_authenticated",
            path=request.url.path,
            method=request.method,
            username=user
        )
        return user

    def search_credential(self, credentials: Optional[HTTPBasicCredentials]) -> Optional[str]:
        """
        Find the account matching the credentials.

        Every account is compared in constant time so the response time does
        not reveal which user names exist.

        Returns:
            Matching user name or None
        """
        if credentials is None:
            return None

        given_user = credentials.username.encode("utf-8")
        given_password = credentials.password.encode("utf-8")

        found = None
        for user, password in self.accounts.items():
            user_ok = secrets.compare_digest(given_user, user.encode("utf-8"))
            password_ok = secrets.compare_digest(given_password, password.encode("utf-8"))
            if user_ok and password_ok:
                found = user
        return found


async def require_basic_auth(request: Request) -> str:
    """
    Authenticate against the BasicAuth configured on the application.

    FastAPI dependency for routers declared at import time, before the
    account table is known.
    """
    basic_auth: BasicAuth = request.app.state.basic_auth
    return await basic_auth(request)


def get_authenticated_user(request: Request) -> str:
    """
    Get the user authenticated by BasicAuth.

    Args:
        request: HTTP request

    Returns:
        User name

    Raises:
        HTTPException: If the route is not behind BasicAuth
    """
    user = getattr(request.state, AUTH_USER_KEY, None)

    if not user:
        logger.warning("user_not_authenticated", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    return user

