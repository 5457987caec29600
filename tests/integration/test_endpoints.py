"""
Integration tests for the example endpoints.

Requests go through the full application (middleware, routing, exception
handlers and lifespan) using FastAPI's TestClient. The upstream used by the
streaming endpoint is replaced through dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from api.src.dependencies import get_upstream_client
from api.src.main import create_app
from api.src.services.upstream import UpstreamUnavailable

pytestmark = pytest.mark.integration


# ============================================================================
# RENDERING
# ============================================================================


class TestRendering:

    def test_ping(self, client):
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.json() == {"message": "pong"}

    def test_ascii_json(self, client):
        response = client.get("/asciiJson")
        assert response.status_code == 200
        assert response.content == b'{"lang":"GO\\u8bed\\u8a00","tag":"\\u003cbr\\u003e"}'
        assert response.json() == {"lang": "GO语言", "tag": "<br>"}

    def test_index_renders_template(self, client):
        response = client.get("/index")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<h1>" in response.text
        assert "Main website" in response.text

    def test_jsonp_with_callback(self, client):
        response = client.get("/JSONP", params={"callback": "x"})
        assert response.status_code == 200
        assert response.text == 'x({"foo":"bar"});'
        assert response.headers["content-type"].startswith("application/javascript")

    def test_jsonp_without_callback(self, client):
        response = client.get("/JSONP")
        assert response.json() == {"foo": "bar"}
        assert response.headers["content-type"].startswith("application/json")

    def test_json_escapes_html(self, client):
        response = client.get("/json")
        assert response.content == b'{"html":"\\u003cb\\u003eHello, world!\\u003c/b\\u003e"}'

    def test_pure_json_keeps_html(self, client):
        response = client.get("/purejson")
        assert response.content == b'{"html":"<b>Hello, world!</b>"}'

    def test_secure_json(self, client):
        response = client.get("/someJSON")
        assert response.content == b'while(1);["lena","austin","foo"]'


# ============================================================================
# BINDING
# ============================================================================


class TestBinding:

    def test_query_and_post_form(self, client):
        response = client.post(
            "/post",
            params={"id": "1234", "page": "1"},
            data={"name": "manu", "message": "this_is_great"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "id": "1234",
            "page": "1",
            "name": "manu",
            "message": "this_is_great",
        }

    def test_post_page_defaults_to_zero(self, client):
        response = client.post("/post", params={"id": "7"}, data={"name": "manu"})
        assert response.json()["page"] == "0"
        assert response.json()["message"] == ""

    def test_should_bind_query_success(self, client):
        response = client.get("/ShouldBindQuery", params={"name": "appleboy", "address": "xyz"})
        assert response.status_code == 200
        assert response.text == "Success"

    def test_should_bind_query_ignores_failure(self, client):
        response = client.get("/ShouldBindQuery", params={"name": "appleboy"})
        assert response.status_code == 200
        assert response.text == "Success"

    def test_binding_url(self, client):
        response = client.get("/bindingurl/appleboy/xyz")
        assert response.status_code == 200
        assert response.json() == {"name": "appleboy", "address": "xyz"}

    def test_binding_url_keeps_padded_value(self, client):
        response = client.get("/bindingurl/%20a/b")
        assert response.status_code == 200
        assert response.json() == {"name": " a", "address": "b"}

    def test_binding_url_blank_param(self, client):
        response = client.get("/bindingurl/%20/xyz")
        assert response.status_code == 400
        body = response.json()
        assert set(body) == {"msg"}
        assert "name" in body["msg"]


# ============================================================================
# UPLOADS
# ============================================================================


class TestUploads:

    def test_single_upload(self, client, tmp_path):
        response = client.post(
            "/upload",
            files={"file": ("hello.txt", b"hello world", "text/plain")},
        )
        assert response.status_code == 200
        assert response.text == "upload succeed."
        assert (tmp_path / "savefile").read_bytes() == b"hello world"

    def test_single_upload_replaces_previous(self, client, tmp_path):
        client.post("/upload", files={"file": ("a.txt", b"first version", "text/plain")})
        client.post("/upload", files={"file": ("b.txt", b"second", "text/plain")})
        assert (tmp_path / "savefile").read_bytes() == b"second"

    def test_single_upload_requires_file(self, client):
        response = client.post("/upload", files={"other": ("a.txt", b"x", "text/plain")})
        assert response.status_code == 422

    def test_multiple_uploads(self, client, tmp_path):
        response = client.post(
            "/uploads",
            files=[
                ("file[]", ("a.txt", b"alpha", "text/plain")),
                ("file[]", ("b.txt", b"beta", "text/plain")),
            ],
        )
        assert response.status_code == 200
        assert response.text == "uploads succeed."
        assert (tmp_path / "savefile0").read_bytes() == b"alpha"
        assert (tmp_path / "savefile1").read_bytes() == b"beta"


# ============================================================================
# STREAMING, BACKGROUND WORK AND REDIRECTS
# ============================================================================


class FakeUpstreamResponse:

    def __init__(self, chunks, content_type="text/html; charset=utf-8", content_length=None):
        self.status = 200
        self.chunks = chunks
        self.content_type = content_type
        self.content_length = content_length
        self.closed = False

    async def iter_chunks(self):
        try:
            for chunk in self.chunks:
                yield chunk
        finally:
            self.closed = True


class FakeUpstreamClient:

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    async def open(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.response


class TestStreaming:

    def test_streams_upstream_body(self, app, settings):
        fake_response = FakeUpstreamResponse([b"<html>", b"</html>"], content_length=13)
        fake = FakeUpstreamClient(response=fake_response)
        app.dependency_overrides[get_upstream_client] = lambda: fake

        with TestClient(app) as client:
            response = client.get("/someDataFromReader")

        assert response.status_code == 200
        assert response.content == b"<html></html>"
        assert response.headers["content-type"] == "text/html; charset=utf-8"
        assert response.headers["content-length"] == "13"
        assert fake.urls == [settings.upstream_url]
        assert fake_response.closed

    def test_upstream_failure_is_service_unavailable(self, app):
        fake = FakeUpstreamClient(error=UpstreamUnavailable("http://upstream.test/", "status 404", 404))
        app.dependency_overrides[get_upstream_client] = lambda: fake

        with TestClient(app) as client:
            response = client.get("/someDataFromReader")

        assert response.status_code == 503
        assert response.content == b""

    def test_long_async_answers_before_work_finishes(self, app):
        with capture_logs() as logs:
            with TestClient(app) as client:
                response = client.get("/long_async")
                assert response.status_code == 200
            # Leaving the client runs the lifespan shutdown, which drains tasks

        done = [entry for entry in logs if entry["event"] == "long_async_done"]
        assert len(done) == 1
        assert done[0]["message"] == "Done! in path /long_async"

    def test_external_redirect(self, client, settings):
        response = client.get("/redirect", follow_redirects=False)
        assert response.status_code == 301
        assert response.headers["location"] == settings.redirect_url

    def test_internal_redirect(self, client):
        response = client.get("/redirect2", follow_redirects=False)
        assert response.status_code == 200
        assert response.json() == {"message": "pong"}


# ============================================================================
# HTTP METHODS
# ============================================================================


class TestMethods:

    @pytest.mark.parametrize(
        "method, path",
        [
            ("GET", "/someGet"),
            ("POST", "/somePost"),
            ("PUT", "/somePut"),
            ("DELETE", "/someDelete"),
            ("PATCH", "/somePatch"),
            ("HEAD", "/someHead"),
            ("OPTIONS", "/someOptions"),
        ],
    )
    def test_method_probe(self, client, method, path):
        response = client.request(method, path)
        assert response.status_code == 200
        assert response.content == b""

    def test_wrong_method(self, client):
        assert client.post("/someGet").status_code == 405


# ============================================================================
# BASIC AUTH
# ============================================================================


class TestAdmin:

    @pytest.mark.parametrize("user, password", [("test1", "test11"), ("test2", "test22")])
    def test_authorized(self, client, user, password):
        response = client.get("/admin/authorized", auth=(user, password))
        assert response.status_code == 200
        assert response.text == "BasicAuth."

    def test_post_authorized(self, client):
        response = client.post("/admin/authorized", auth=("test1", "test11"))
        assert response.status_code == 200

    def test_wrong_password(self, client):
        response = client.get("/admin/authorized", auth=("test1", "wrong"))
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == 'Basic realm="Authorization Required"'

    def test_missing_credentials(self, client):
        response = client.get("/admin/authorized")
        assert response.status_code == 401
        assert "www-authenticate" in response.headers

    def test_custom_accounts(self, settings):
        app = create_app(settings.model_copy(update={"basic_auth_accounts": {"alice": "s3cret"}}))
        with TestClient(app) as client:
            assert client.get("/admin/authorized", auth=("alice", "s3cret")).status_code == 200
            assert client.get("/admin/authorized", auth=("test1", "test11")).status_code == 401


# ============================================================================
# AMBIENT: LOGGING, METRICS, RECOVERY
# ============================================================================


class TestAmbient:

    def test_correlation_id_generated(self, client):
        response = client.get("/ping")
        assert response.headers["x-correlation-id"]

    def test_correlation_id_propagated(self, client):
        response = client.get("/ping", headers={"X-Correlation-ID": "req-42"})
        assert response.headers["x-correlation-id"] == "req-42"

    def test_request_is_logged(self, client):
        with capture_logs() as logs:
            client.get("/ping", headers={"User-Agent": "pytest-agent"})

        entries = [entry for entry in logs if entry["event"] == "request_completed"]
        assert len(entries) == 1
        entry = entries[0]
        assert entry["method"] == "GET"
        assert entry["path"] == "/ping"
        assert entry["status_code"] == 200
        assert entry["user_agent"] == "pytest-agent"
        assert entry["protocol"].startswith("HTTP/")
        assert entry["latency"].endswith("s")

    def test_health(self, client, settings):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == settings.app_name

    def test_metrics(self, client):
        client.get("/ping")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_metrics_disabled(self, settings):
        app = create_app(settings.model_copy(update={"metrics_enabled": False}))
        with TestClient(app) as client:
            assert client.get("/metrics").status_code == 404

    def test_unexpected_exception_is_recovered(self, app):
        async def boom():
            raise RuntimeError("kaboom")

        app.add_api_route("/boom", boom)

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}

    def test_unknown_route(self, client):
        response = client.get("/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}
