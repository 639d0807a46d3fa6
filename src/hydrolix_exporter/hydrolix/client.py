from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from ..config import HydrolixSettings
from ..constants import HydrolixRoutes
from ..errors import HydrolixError, IngestError, ResourceNotFound
from ..logging import ExporterLogger
from ..models import HydrolixObject, LogRecord, MetricsSnapshot, SinkTarget
from ..transport import JSON_HEADERS, decode_body, send
from .session import SessionManager
from .transforms import analytics_transform, logs_transform


class HydrolixClient:
    """Authenticated Hydrolix API client with a single re-login on token expiry."""

    def __init__(
        self,
        settings: HydrolixSettings,
        logger: ExporterLogger,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = settings.instance_url.rstrip("/")
        self.target = settings.sink_target()
        self._logger = logger
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self.sessions = SessionManager(
            self._http,
            self.base_url,
            settings.username,
            settings.password,
            logger,
        )

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def request(
        self,
        path: str,
        method: str = "GET",
        payload: Optional[Any] = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        retry_on_unauthorized: bool = True,
    ) -> Any:
        """
        Send an authenticated request and return the decoded body.

        A 401 on the first attempt invalidates the session, logs in once and
        replays the request once. Any other non-2xx status, or a second failure,
        raises IngestError.
        """
        session = self.sessions.current_session()
        if session is None:
            session = await self.sessions.login()

        request_headers = {
            **JSON_HEADERS,
            **(headers or {}),
            "Authorization": f"Bearer {session.access_token}",
        }
        self._logger.debug("hydrolix_request", method=method, path=path)
        response = await send(
            self._http,
            method,
            f"{self.base_url}{path}",
            payload=payload,
            headers=request_headers,
        )

        if response.status_code == 401 and retry_on_unauthorized:
            self._logger.warning("hydrolix_token_expired", method=method, path=path)
            self.sessions.invalidate()
            await self.sessions.login()
            return await self.request(
                path,
                method,
                payload,
                headers=headers,
                retry_on_unauthorized=False,
            )

        if not response.is_success:
            raise IngestError(response.status_code, method, path, decode_body(response))

        return decode_body(response)

    async def publish_logs(self, records: Sequence[LogRecord]) -> bool:
        """Best effort: failures are logged and reported as False."""
        if not records:
            self._logger.debug("logs_publish_skipped", reason="empty_batch")
            return True
        return await self._publish(
            "logs",
            [record.to_event() for record in records],
            self.target.logs_headers(),
            count=len(records),
        )

    async def publish_metrics(self, snapshot: MetricsSnapshot) -> bool:
        """Best effort: failures are logged and reported as False."""
        return await self._publish(
            "metrics",
            snapshot.to_event(),
            self.target.analytics_headers(),
            count=1,
        )

    async def init_session(self) -> SinkTarget:
        """
        Log in and make sure every resource the exporter writes to exists.

        Project and tables must already exist; missing transforms are created
        from the bundled templates.
        """
        await self.sessions.login()

        project = await self._find(HydrolixRoutes.projects, self.target.project)
        if project is None:
            raise ResourceNotFound("project", self.target.project)
        self._logger.info("hydrolix_project", uuid=project.uuid, name=project.name)

        targets = (
            (self.target.logs_table, self.target.logs_transform_name, logs_transform),
            (self.target.analytics_table, self.target.analytics_transform_name, analytics_transform),
        )
        for table_name, transform_name, template in targets:
            table = await self._find(
                lambda org: HydrolixRoutes.tables(org, project.uuid),
                table_name,
            )
            if table is None:
                raise ResourceNotFound("table", table_name)
            self._logger.info("hydrolix_table", uuid=table.uuid, name=table.name)
            await self._ensure_transform(project.uuid, table.uuid, transform_name, template)

        return self.target

    async def _publish(self, kind: str, body: Any, headers: Dict[str, str], count: int) -> bool:
        table = headers["x-hdx-table"]
        transform = headers["x-hdx-transform"]
        try:
            await self.request(HydrolixRoutes.INGEST, "POST", body, headers=headers)
        except IngestError as exc:
            self._logger.error(
                f"{kind}_publish_failed",
                table=table,
                transform=transform,
                status=exc.status_code,
                body=exc.body,
                count=count,
            )
            return False
        except HydrolixError as exc:
            self._logger.error(
                f"{kind}_publish_failed",
                table=table,
                transform=transform,
                error=str(exc),
                error_type=type(exc).__name__,
                count=count,
            )
            return False

        self._logger.info(f"{kind}_published", table=table, transform=transform, count=count)
        return True

    async def _find(self, route: Callable[[str], str], name: str) -> Optional[HydrolixObject]:
        for obj in await self._list(route):
            if obj.name == name:
                return obj
        return None

    async def _list(self, route: Callable[[str], str]) -> List[HydrolixObject]:
        org_id = self._organization_id()
        body = await self.request(route(org_id), "GET")
        if isinstance(body, dict):
            body = body.get("results") or []
        return [HydrolixObject.from_dict(item) for item in body or [] if isinstance(item, dict)]

    async def _ensure_transform(
        self,
        project_id: str,
        table_id: str,
        transform_name: str,
        template: Callable[[str], Dict[str, Any]],
    ) -> None:
        existing = await self._find(
            lambda org: HydrolixRoutes.transforms(org, project_id, table_id),
            transform_name,
        )
        if existing is not None:
            self._logger.info("hydrolix_transform_exists", name=transform_name)
            return

        created = await self.request(
            HydrolixRoutes.transforms(self._organization_id(), project_id, table_id),
            "POST",
            template(transform_name),
        )
        self._logger.info("hydrolix_transform_created", name=transform_name, response=created)

    def _organization_id(self) -> str:
        session = self.sessions.current_session()
        if session is None:
            raise HydrolixError("No Hydrolix session; call init_session() first")
        return session.organization_id
