from unittest.mock import MagicMock

import pytest
import requests

from mediamind.agents.errors import LookupFailed
from mediamind.core.datastore import InMemoryDataStore, RestDataStore, build_datastore
from mediamind.utils.env_cfg import DataStoreConfig


def _config(url: str | None = "https://db.test/") -> DataStoreConfig:
    return DataStoreConfig(url=url, api_key="service-key", timeout=3, row_limit=50)


def _rest_store(json_body=None, error: Exception | None = None) -> tuple[RestDataStore, MagicMock]:
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value.json.return_value = json_body
    return RestDataStore(config=_config(), session=session), session


def test_rest_fetch_builds_request() -> None:
    store, session = _rest_store([{"id": 1}])

    rows = store.fetch("campaigns", {"organization_id": "org-1"}, limit=5)

    assert rows == [{"id": 1}]
    args, kwargs = session.get.call_args
    assert args[0] == "https://db.test/rest/v1/campaigns"
    assert kwargs["params"] == {"organization_id": "eq.org-1", "limit": "5"}
    assert kwargs["headers"]["apikey"] == "service-key"
    assert kwargs["headers"]["Authorization"] == "Bearer service-key"
    assert kwargs["timeout"] == 3


def test_build_params_translates_filters() -> None:
    store = RestDataStore(config=_config(), session=MagicMock())

    params = store.build_params({"campaign_id": [1, 2], "deleted_at": None, "active": True})

    assert params == {
        "campaign_id": "in.(1,2)",
        "deleted_at": "is.null",
        "active": "eq.true",
        "limit": "50",
    }


@pytest.mark.parametrize(
    "error",
    [requests.ConnectionError("refused"), requests.Timeout("slow"), requests.HTTPError("500")],
)
def test_rest_transport_errors_become_lookup_failed(error: Exception) -> None:
    store, _ = _rest_store(error=error)
    with pytest.raises(LookupFailed) as info:
        store.fetch("campaigns", {"organization_id": "org-1"})
    assert info.value.view == "campaigns"


def test_rest_rejects_invalid_bodies() -> None:
    store, session = _rest_store()
    session.get.return_value.json.side_effect = ValueError("not json")
    with pytest.raises(LookupFailed, match="invalid JSON"):
        store.fetch("campaigns", {})

    store, _ = _rest_store({"message": "oops"})
    with pytest.raises(LookupFailed, match="did not return rows"):
        store.fetch("campaigns", {})


def test_rest_without_url_fails_fast() -> None:
    session = MagicMock()
    store = RestDataStore(config=_config(url=None), session=session)
    with pytest.raises(LookupFailed, match="not configured"):
        store.fetch("campaigns", {})
    session.get.assert_not_called()


def test_in_memory_filters_and_limits() -> None:
    store = InMemoryDataStore(
        views={
            "campaigns": [
                {"id": 1, "organization_id": "a"},
                {"id": 2, "organization_id": "a"},
                {"id": 3, "organization_id": "b"},
            ]
        }
    )

    assert [r["id"] for r in store.fetch("campaigns", {"organization_id": "a"})] == [1, 2]
    assert [r["id"] for r in store.fetch("campaigns", {"id": [2, 3]})] == [2, 3]
    assert len(store.fetch("campaigns", {}, limit=1)) == 1
    assert store.calls[0] == ("campaigns", {"organization_id": "a"})

    with pytest.raises(LookupFailed):
        store.fetch("unknown", {})


def test_build_datastore_picks_backend() -> None:
    assert isinstance(build_datastore(_config()), RestDataStore)
    assert isinstance(build_datastore(_config(url=None)), InMemoryDataStore)


def test_unconfigured_store_treats_unknown_views_as_empty() -> None:
    store = build_datastore(_config(url=None))

    assert store.strict is False
    assert store.fetch("campaigns", {"organization_id": "org-1"}) == []
    assert InMemoryDataStore().strict is True
