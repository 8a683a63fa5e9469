"""Thin Supabase (PostgREST) client built on top of httpx."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from ..settings import get_app_settings
from .exceptions import StorageNotConfiguredError, UpstreamQueryError

_REST_PREFIX = "/rest/v1"
_RESERVED_CHARS = set(',.:()"\\ ')


@dataclass(frozen=True)
class QueryResult:
    """Rows (or a single object / scalar) returned by PostgREST plus the exact count if requested."""

    data: Any
    count: Optional[int] = None


def quote_value(value: Any) -> str:
    """Render a filter value, double-quoting it when it holds PostgREST reserved characters."""
    text = str(value)
    if any(char in _RESERVED_CHARS for char in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def condition(column: str, operator: str, value: Any) -> str:
    """Return a ``column.operator.value`` clause for use inside ``or``/``and`` groups."""
    return f"{column}.{operator}.{quote_value(value)}"


def ilike_pattern(term: str) -> str:
    return f"*{term}*"


class _FilterMixin:
    """Filter helpers shared by table and RPC queries."""

    _params: List[Tuple[str, str]]

    def eq(self, column: str, value: Any):
        return self._filter(column, f"eq.{quote_value(value)}")

    def gte(self, column: str, value: Any):
        return self._filter(column, f"gte.{value}")

    def lte(self, column: str, value: Any):
        return self._filter(column, f"lte.{value}")

    def not_(self, column: str, operator: str, value: Any):
        rendered = "null" if value is None else quote_value(value)
        return self._filter(column, f"not.{operator}.{rendered}")

    def in_(self, column: str, values: Iterable[Any]):
        rendered = ",".join(quote_value(value) for value in values)
        return self._filter(column, f"in.({rendered})")

    def overlaps(self, column: str, values: Iterable[Any]):
        rendered = ",".join(str(value) for value in values)
        return self._filter(column, f"ov.{{{rendered}}}")

    def or_(self, conditions: Sequence[str]):
        return self._filter("or", f"({','.join(conditions)})")

    def and_(self, conditions: Sequence[str]):
        return self._filter("and", f"({','.join(conditions)})")

    def _filter(self, key: str, expression: str):
        self._params.append((key, expression))
        return self


class _QueryBase(_FilterMixin):
    """Ordering, paging and execution shared by table and RPC queries."""

    _client: "SupabaseClient"
    _prefer: List[str]

    def order(self, column: str, *, desc: bool = False):
        direction = "desc" if desc else "asc"
        self._params.append(("order", f"{column}.{direction}"))
        return self

    def range(self, start: int, end: int):
        self._params.append(("offset", str(start)))
        self._params.append(("limit", str(end - start + 1)))
        return self

    def limit(self, count: int):
        self._params.append(("limit", str(count)))
        return self

    def _request_count(self, count: Optional[str]) -> None:
        if count:
            self._prefer.append(f"count={count}")

    @property
    def headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._prefer:
            headers["Prefer"] = ",".join(self._prefer)
        return headers

    def filter_value(self, key: str) -> Optional[str]:
        """Return the first rendered expression registered for ``key``."""
        for name, expression in self._params:
            if name == key:
                return expression
        return None

    async def execute(self) -> QueryResult:
        return await self._client.execute(self)


class TableQuery(_QueryBase):
    """Builder for ``/rest/v1/<table>`` requests."""

    def __init__(self, client: "SupabaseClient", table: str) -> None:
        self._client = client
        self.table = table
        self.method = "GET"
        self.columns = "*"
        self.body: Any = None
        self._params = []
        self._prefer = []

    def select(self, columns: str = "*", *, count: Optional[str] = None) -> "TableQuery":
        self.columns = "".join(columns.split())
        self._request_count(count)
        return self

    def insert(self, row: Dict[str, Any]) -> "TableQuery":
        self.method = "POST"
        self.body = row
        self._prefer.append("return=minimal")
        return self

    @property
    def path(self) -> str:
        return f"{_REST_PREFIX}/{self.table}"

    @property
    def params(self) -> List[Tuple[str, str]]:
        if self.method == "GET":
            return [("select", self.columns), *self._params]
        return list(self._params)


class RpcQuery(_QueryBase):
    """Builder for ``/rest/v1/rpc/<function>`` calls; set-returning results accept filters."""

    def __init__(self, client: "SupabaseClient", function: str, arguments: Optional[Dict[str, Any]] = None) -> None:
        self._client = client
        self.function = function
        self.method = "POST"
        self.body = dict(arguments or {})
        self._params = []
        self._prefer = []

    def select(self, columns: str = "*", *, count: Optional[str] = None) -> "RpcQuery":
        self._params.insert(0, ("select", "".join(columns.split())))
        self._request_count(count)
        return self

    @property
    def path(self) -> str:
        return f"{_REST_PREFIX}/rpc/{self.function}"

    @property
    def params(self) -> List[Tuple[str, str]]:
        return list(self._params)


class SupabaseClient:
    """Execute PostgREST queries against a hosted Supabase project."""

    def __init__(self, *, base_url: str, api_key: str, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._logger = logging.getLogger(__name__)

    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)

    def rpc(self, function: str, arguments: Optional[Dict[str, Any]] = None) -> RpcQuery:
        return RpcQuery(self, function, arguments)

    async def execute(self, query: TableQuery | RpcQuery) -> QueryResult:
        """Send the query and return parsed rows, raising ``UpstreamQueryError`` on failure."""
        url = f"{self._base_url}{query.path}"
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            **query.headers,
        }
        target = getattr(query, "table", None) or getattr(query, "function", None)

        try:
            self._logger.debug("Calling Supabase %s %s params=%s", query.method, target, query.params)
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(
                    query.method,
                    url,
                    params=query.params,
                    json=query.body,
                    headers=headers,
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            message = _extract_error_message(exc.response) or "Supabase rejected the request"
            self._logger.warning(
                "Supabase rejected %s %s status_code=%s message=%s",
                query.method,
                target,
                status_code,
                message,
            )
            raise UpstreamQueryError(message, upstream_status=status_code) from exc
        except httpx.HTTPError as exc:
            self._logger.exception("Failed to call Supabase %s %s", query.method, target)
            raise UpstreamQueryError("Failed to call Supabase REST API") from exc

        count = _parse_content_range(response.headers.get("content-range"))
        if response.status_code == 204 or not response.content:
            return QueryResult(data=None, count=count)

        try:
            payload = response.json()
        except ValueError as exc:
            self._logger.exception("Supabase returned invalid JSON for %s", target)
            raise UpstreamQueryError("Supabase returned invalid JSON") from exc

        return QueryResult(data=payload, count=count)


def _parse_content_range(value: Optional[str]) -> Optional[int]:
    # Content-Range: 0-9/123 or */0
    if not value or "/" not in value:
        return None
    total = value.rsplit("/", 1)[1]
    try:
        return int(total)
    except ValueError:
        return None


def _extract_error_message(response: Optional[httpx.Response]) -> Optional[str]:
    if response is None:
        return None
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
    return None


@lru_cache(maxsize=1)
def get_supabase_client() -> SupabaseClient:
    """Factory for FastAPI dependency injection."""
    settings = get_app_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise StorageNotConfiguredError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
    return SupabaseClient(
        base_url=settings.supabase_url,
        api_key=settings.supabase_key,
        timeout=settings.timeout,
    )


def reset_supabase_client_cache() -> None:
    """Clear the cached client; intended for use in test suites."""
    get_supabase_client.cache_clear()


__all__ = [
    "QueryResult",
    "RpcQuery",
    "SupabaseClient",
    "TableQuery",
    "condition",
    "get_supabase_client",
    "ilike_pattern",
    "quote_value",
    "reset_supabase_client_cache",
]
