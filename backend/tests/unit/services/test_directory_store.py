"""
Unit Tests for the REST directory store
Tests for: query parameter mapping, headers, writes, error translation
"""
import json
import pytest
import httpx

from portal.core.exceptions import DirectoryStoreError
from portal.services.directory_store import (
    RestDirectoryStore,
    build_query_params,
    COURSE_EMBED,
    AUTHOR_EMBED,
)

BASE_URL = "https://directory.test/rest/v1"


def make_store(handler) -> RestDirectoryStore:
    return RestDirectoryStore(BASE_URL, "anon-key", transport=httpx.MockTransport(handler))


class TestBuildQueryParams:
    """Test translation of select arguments"""

    def test_equality_filter_and_embed(self):
        params = build_query_params(filters={"level": "100 ICT"}, embeds=[COURSE_EMBED])

        assert params[0] == ("select", f"*,{COURSE_EMBED}")
        assert ("level", "eq.100 ICT") in params

    def test_null_and_bool_filters(self):
        params = build_query_params(filters={"level": None, "active": True})

        assert ("level", "is.null") in params
        assert ("active", "is.true") in params

    def test_any_of_with_null(self):
        params = build_query_params(any_of={"level": ["100 ICT", None]})

        assert ("or", '(level.eq."100 ICT",level.is.null)') in params

    def test_order(self):
        params = build_query_params(order=["day_of_week.asc", "start_time.asc"])

        assert ("order", "day_of_week.asc,start_time.asc") in params

    def test_no_select_for_writes(self):
        params = build_query_params(filters={"id": "abc"}, columns=None)

        assert params == [("id", "eq.abc")]


class TestRestDirectoryStore:
    """Test HTTP behaviour against a mock transport"""

    @pytest.mark.asyncio
    async def test_select_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json=[{"id": "a1", "message": "hello"}])

        store = make_store(handler)
        rows = await store.select(
            "announcements",
            any_of={"level": ["100 ICT", None]},
            embeds=[AUTHOR_EMBED],
            order=["created_at.desc"],
        )
        await store.close()

        request = seen["request"]
        assert rows == [{"id": "a1", "message": "hello"}]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/announcements"
        assert request.url.params["order"] == "created_at.desc"
        assert request.url.params["or"] == '(level.eq."100 ICT",level.is.null)'
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"
        assert request.headers["Accept-Profile"] == "public"

    @pytest.mark.asyncio
    async def test_insert_asks_for_representation(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            body = json.loads(request.content)
            return httpx.Response(201, json=[dict(body[0], id="new-id")])

        store = make_store(handler)
        rows = await store.insert("courses", [{"course_code": "ICT101"}])
        await store.close()

        assert rows[0]["id"] == "new-id"
        assert seen["request"].method == "POST"
        assert seen["request"].headers["Prefer"] == "return=representation"

    @pytest.mark.asyncio
    async def test_update_filters_by_id(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json=[{"id": "c1", "course_title": "New"}])

        store = make_store(handler)
        rows = await store.update("courses", {"course_title": "New"}, {"id": "c1"})
        await store.close()

        request = seen["request"]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.c1"
        assert "select" not in request.url.params
        assert json.loads(request.content) == {"course_title": "New"}
        assert rows[0]["course_title"] == "New"

    @pytest.mark.asyncio
    async def test_delete_empty_body(self):
        store = make_store(lambda request: httpx.Response(204))

        rows = await store.delete("courses", {"id": "missing"})
        await store.close()

        assert rows == []

    @pytest.mark.asyncio
    async def test_update_without_filter_refused(self):
        store = make_store(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(DirectoryStoreError):
            await store.update("courses", {"level": "x"}, {})
        with pytest.raises(DirectoryStoreError):
            await store.delete("courses", {})
        await store.close()

    @pytest.mark.asyncio
    async def test_error_status_translated(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "column timetable.lvl does not exist"})

        store = make_store(handler)
        with pytest.raises(DirectoryStoreError) as exc_info:
            await store.select("timetable", filters={"lvl": "x"})
        await store.close()

        error = exc_info.value
        assert error.message == "column timetable.lvl does not exist"
        assert error.details == {"table": "timetable", "status": 400}
        assert error.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_error_translated(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = make_store(handler)
        with pytest.raises(DirectoryStoreError) as exc_info:
            await store.select("timetable")
        await store.close()

        assert "unreachable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_html_body_translated(self):
        # A proxy maintenance page served with 200
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, text="<html>maintenance</html>", headers={"content-type": "text/html"}
            )

        store = make_store(handler)
        with pytest.raises(DirectoryStoreError) as exc_info:
            await store.select("timetable")
        await store.close()

        assert exc_info.value.message == "Directory store returned a non-JSON body"
        assert exc_info.value.details == {"table": "timetable", "status": 200}

    @pytest.mark.asyncio
    async def test_non_row_json_translated(self):
        bodies = iter([b"null", b'"ok"', b"42"])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=next(bodies), headers={"content-type": "application/json"}
            )

        store = make_store(handler)
        for _ in range(3):
            with pytest.raises(DirectoryStoreError) as exc_info:
                await store.select("timetable")
            assert "expected rows" in exc_info.value.message
        await store.close()

    @pytest.mark.asyncio
    async def test_ping(self):
        healthy = make_store(lambda request: httpx.Response(200, json={}))
        broken = make_store(lambda request: httpx.Response(503))

        assert await healthy.ping() is True
        assert await broken.ping() is False

        await healthy.close()
        await broken.close()
