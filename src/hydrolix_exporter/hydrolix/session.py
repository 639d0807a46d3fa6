from __future__ import annotations

from typing import Optional

import httpx
from pydantic import SecretStr

from ..constants import HydrolixRoutes
from ..errors import AuthenticationError
from ..logging import ExporterLogger
from ..models import LoginFailure, SessionState, SinkSession, decode_login_response
from ..transport import JSON_HEADERS, decode_body, send


class SessionManager:
    """
    Owns the Hydrolix access token.

    The first organization returned by the login is used as the active one.
    Concurrent ``login()`` calls are not serialized here; HydrolixClient only
    ever has one login in flight.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        username: str,
        password: SecretStr,
        logger: ExporterLogger,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._username = username
        self._password = password
        self._logger = logger
        self._session: Optional[SinkSession] = None
        self.state = SessionState.LOGGED_OUT
        self.login_count = 0

    async def login(self) -> SinkSession:
        self.state = SessionState.LOGGING_IN
        self._session = None
        self.login_count += 1
        try:
            response = await send(
                self._http,
                "POST",
                f"{self._base_url}{HydrolixRoutes.LOGIN}",
                payload={
                    "username": self._username,
                    "password": self._password.get_secret_value(),
                },
                headers=dict(JSON_HEADERS),
            )
            result = decode_login_response(response.status_code, decode_body(response))
            if isinstance(result, LoginFailure):
                raise AuthenticationError(result.detail or f"Could not log in (HTTP {response.status_code})")
            if not result.orgs:
                raise AuthenticationError("Login succeeded but no organization is attached to the account")
        except Exception:
            self.state = SessionState.LOGGED_OUT
            raise

        if len(result.orgs) > 1:
            self._logger.warning(
                "hydrolix_multiple_orgs",
                selected=result.orgs[0].name,
                available=[org.name for org in result.orgs],
            )

        self._session = SinkSession(
            access_token=result.access_token,
            organization_id=result.orgs[0].uuid,
        )
        self.state = SessionState.LOGGED_IN
        self._logger.info("hydrolix_logged_in", organization_id=self._session.organization_id)
        return self._session

    def current_session(self) -> Optional[SinkSession]:
        return self._session

    def invalidate(self) -> None:
        self._session = None
        self.state = SessionState.LOGGED_OUT
