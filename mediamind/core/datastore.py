from dataclasses import dataclass, field
from typing import Any

import requests
from loguru import logger

from mediamind.agents.errors import LookupFailed
from mediamind.agents.types import DataStore
from mediamind.utils.env_cfg import DataStoreConfig, load_datastore_env


def _filter_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set)):
        return "in.(" + ",".join(str(v) for v in value) + ")"
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


@dataclass
class RestDataStore:
    """
    Read-only access to dashboard views over a PostgREST-style endpoint.
    """

    config: DataStoreConfig = field(default_factory=load_datastore_env)
    session: requests.Session = field(default_factory=requests.Session)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["apikey"] = self.config.api_key
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def build_params(
        self, filters: dict[str, Any], limit: int | None = None
    ) -> dict[str, str]:
        """
        Translate equality filters into query parameters.

        Args:
            filters (dict[str, Any]): Column to value; sequences become ``in`` filters.
            limit (int | None, optional): Maximum rows. Defaults to the configured row limit.

        Returns:
            dict[str, str]: Query parameters for the request.
        """
        params = {column: _filter_value(value) for column, value in filters.items()}
        params["limit"] = str(limit if limit is not None else self.config.row_limit)
        return params

    def fetch(
        self, view: str, filters: dict[str, Any], *, limit: int | None = None
    ) -> list[dict[str, Any]]:
        """
        Fetch rows from a view.

        Args:
            view (str): Table or view name.
            filters (dict[str, Any]): Equality filters, including ``organization_id``.
            limit (int | None, optional): Maximum rows. Defaults to the configured row limit.

        Returns:
            list[dict[str, Any]]: Matching rows. An empty list is a valid result.

        Raises:
            LookupFailed: If the store is not configured, unreachable or returns an error.
        """
        if not self.config.url:
            raise LookupFailed("Data store URL is not configured", view=view)

        url = f"{self.config.url.rstrip('/')}/rest/v1/{view}"
        try:
            response = self.session.get(
                url,
                params=self.build_params(filters, limit),
                headers=self._headers(),
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            rows = response.json()
        except requests.RequestException as e:
            logger.warning("Lookup on '{}' failed: {}", view, e)
            raise LookupFailed(f"Lookup on '{view}' failed: {e}", view=view) from e
        except ValueError as e:
            logger.warning("Lookup on '{}' returned invalid JSON: {}", view, e)
            raise LookupFailed(f"Lookup on '{view}' returned invalid JSON", view=view) from e

        if not isinstance(rows, list):
            raise LookupFailed(f"Lookup on '{view}' did not return rows", view=view)
        logger.debug("Fetched {} row(s) from '{}'", len(rows), view)
        return rows


@dataclass
class InMemoryDataStore:
    """
    Data store backed by in-process rows. Useful for tests and local runs.
    A strict store rejects views it was not given; a lenient one treats them as empty.
    """

    views: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    strict: bool = True
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def fetch(
        self, view: str, filters: dict[str, Any], *, limit: int | None = None
    ) -> list[dict[str, Any]]:
        """
        Return rows of a view whose columns equal every filter value.

        Args:
            view (str): Table or view name.
            filters (dict[str, Any]): Equality filters; sequences match any member.
            limit (int | None, optional): Maximum rows. Defaults to no limit.

        Returns:
            list[dict[str, Any]]: Copies of the matching rows.

        Raises:
            LookupFailed: If the store is strict and the view does not exist.
        """
        self.calls.append((view, dict(filters)))
        if view not in self.views:
            if not self.strict:
                return []
            raise LookupFailed(f"Unknown view '{view}'", view=view)

        def matches(row: dict[str, Any]) -> bool:
            for column, expected in filters.items():
                actual = row.get(column)
                if isinstance(expected, (list, tuple, set)):
                    if actual not in expected:
                        return False
                elif actual != expected:
                    return False
            return True

        rows = [dict(row) for row in self.views[view] if matches(row)]
        return rows[:limit] if limit is not None else rows


def build_datastore(config: DataStoreConfig | None = None) -> DataStore:
    """
    Create the data store selected by configuration.

    Args:
        config (DataStoreConfig | None, optional): Store settings. Defaults to load_datastore_env().

    Returns:
        DataStore: A REST store when a URL is configured, otherwise an empty, lenient in-memory store.
    """
    cfg = config or load_datastore_env()
    if cfg.url:
        return RestDataStore(config=cfg)
    logger.warning("DATASTORE_URL is not set; every view will be empty")
    return InMemoryDataStore(strict=False)
