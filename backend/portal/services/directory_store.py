"""
Directory Store Client
======================
Access to the hosted relational database that owns users, courses,
timetable entries and announcements.

The portal never holds authoritative state: every read goes through
`DirectoryStore.select`, every admin action through insert/update/delete.
`RestDirectoryStore` talks to the database's PostgREST-style REST surface.

Usage:
    from portal.services.directory_store import RestDirectoryStore, COURSE_EMBED

    store = RestDirectoryStore(settings.rest_url, settings.DIRECTORY_API_KEY)
    rows = await store.select(
        "timetable",
        filters={"level": "100 ICT"},
        embeds=[COURSE_EMBED],
    )
    await store.close()
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx

from portal.core.exceptions import DirectoryStoreError
from portal.core.logging_config import logger


# Embedded joins. User columns are listed explicitly so the password hash
# never leaves the store.
USER_PUBLIC_COLUMNS = "id,email,full_name,role,level,created_at"
LECTURER_EMBED = f"lecturer:users!courses_lecturer_id_fkey({USER_PUBLIC_COLUMNS})"
COURSE_EMBED = f"course:courses(*,{LECTURER_EMBED})"
AUTHOR_EMBED = f"author:users!announcements_posted_by_fkey({USER_PUBLIC_COLUMNS})"

Filters = Dict[str, Any]
Row = Dict[str, Any]


class DirectoryStore(ABC):
    """
    Query interface of the hosted database.

    Filters are equality maps; a value of None matches NULL.
    `any_of` maps one column to a list of accepted values (OR).
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        embeds: Optional[Sequence[str]] = None,
        order: Optional[Sequence[str]] = None,
        any_of: Optional[Dict[str, List[Any]]] = None,
        columns: str = "*",
    ) -> List[Row]:
        """Return matching rows, with embedded joins expanded"""

    @abstractmethod
    async def insert(self, table: str, rows: List[Row]) -> List[Row]:
        """Insert rows and return them as stored"""

    @abstractmethod
    async def update(self, table: str, patch: Row, filters: Filters) -> List[Row]:
        """Apply patch to matching rows and return the updated rows"""

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> List[Row]:
        """Delete matching rows and return what was deleted"""

    async def ping(self) -> bool:
        """Check the store is reachable"""
        return True

    async def close(self) -> None:
        """Release transport resources"""


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(value: Any) -> str:
    """Quote a value for use inside an or=(...) expression"""
    text = _format_value(value).replace('\\', '\\\\').replace('"', '\\"')
    return f'"{text}"'


def build_query_params(
    filters: Optional[Filters] = None,
    embeds: Optional[Sequence[str]] = None,
    order: Optional[Sequence[str]] = None,
    any_of: Optional[Dict[str, List[Any]]] = None,
    columns: Optional[str] = "*",
) -> List[tuple]:
    """Translate select arguments into PostgREST query parameters"""
    params: List[tuple] = []

    if columns is not None:
        select_parts = [columns] + list(embeds or [])
        params.append(("select", ",".join(select_parts)))

    for column, value in (filters or {}).items():
        if value is None:
            params.append((column, "is.null"))
        elif isinstance(value, bool):
            params.append((column, f"is.{_format_value(value)}"))
        else:
            params.append((column, f"eq.{_format_value(value)}"))

    for column, values in (any_of or {}).items():
        conditions = []
        for value in values:
            if value is None:
                conditions.append(f"{column}.is.null")
            else:
                conditions.append(f"{column}.eq.{_quote(value)}")
        params.append(("or", f"({','.join(conditions)})"))

    if order:
        params.append(("order", ",".join(order)))

    return params


class RestDirectoryStore(DirectoryStore):
    """
    Directory store backed by the database's REST API (PostgREST dialect).

    Every request carries the project API key both as `apikey` and as a
    bearer token. Writes ask for `return=representation` so callers get the
    stored rows back.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        schema: str = "public",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.schema = schema
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept-Profile": schema,
                "Content-Profile": schema,
                "Accept": "application/json",
            },
        )

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[List[tuple]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> List[Row]:
        headers = {"Prefer": prefer} if prefer else None
        start = time.perf_counter()

        try:
            response = await self._client.request(
                method,
                f"/{table}",
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(f"[DirectoryStore] {method} {table} transport error: {e}")
            raise DirectoryStoreError(f"Directory store unreachable: {e}", table=table) from e

        duration_ms = (time.perf_counter() - start) * 1000

        if response.status_code >= 400:
            message = response.text
            try:
                body = response.json()
                if isinstance(body, dict):
                    message = body.get("message") or body.get("error") or message
            except ValueError:
                pass
            logger.warning(
                f"[DirectoryStore] {method} {table} failed with {response.status_code}: {message}"
            )
            raise DirectoryStoreError(message, table=table, status=response.status_code)

        if not response.content:
            rows: List[Row] = []
        else:
            try:
                rows = response.json()
            except ValueError as e:
                logger.warning(
                    f"[DirectoryStore] {method} {table} returned a non-JSON body "
                    f"({response.headers.get('content-type', 'unknown type')})"
                )
                raise DirectoryStoreError(
                    "Directory store returned a non-JSON body",
                    table=table,
                    status=response.status_code,
                ) from e
            if isinstance(rows, dict):
                rows = [rows]
            if not isinstance(rows, list):
                raise DirectoryStoreError(
                    f"Directory store returned {type(rows).__name__}, expected rows",
                    table=table,
                    status=response.status_code,
                )

        logger.log_db_query(
            method, table, duration_ms, rows_affected=len(rows), status=response.status_code
        )
        return rows

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        embeds: Optional[Sequence[str]] = None,
        order: Optional[Sequence[str]] = None,
        any_of: Optional[Dict[str, List[Any]]] = None,
        columns: str = "*",
    ) -> List[Row]:
        params = build_query_params(filters, embeds, order, any_of, columns)
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, rows: List[Row]) -> List[Row]:
        return await self._request(
            "POST", table, json=rows, prefer="return=representation"
        )

    async def update(self, table: str, patch: Row, filters: Filters) -> List[Row]:
        if not filters:
            raise DirectoryStoreError("Refusing to update without a filter", table=table)
        params = build_query_params(filters, columns=None)
        return await self._request(
            "PATCH", table, params=params, json=patch, prefer="return=representation"
        )

    async def delete(self, table: str, filters: Filters) -> List[Row]:
        if not filters:
            raise DirectoryStoreError("Refusing to delete without a filter", table=table)
        params = build_query_params(filters, columns=None)
        return await self._request(
            "DELETE", table, params=params, prefer="return=representation"
        )

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/")
        except httpx.HTTPError as e:
            logger.warning(f"[DirectoryStore] Ping failed: {e}")
            return False
        return response.status_code < 500

    async def close(self) -> None:
        await self._client.aclose()
