"""Tests for the HTTP pod client."""
import httpx
import pytest

from podseeder.errors import MetadataError, UploadError
from podseeder.models import AuthzFlavor, SessionCredential
from podseeder.services import pod_client
from podseeder.services.pod_client import (
    AuthzMetadataAttacher,
    PodContentUploader,
    PodHTTPClient,
    join_pod_path,
)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(pod_client, "RETRY_BACKOFF", 0)


def _client(handler):
    return PodHTTPClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_join_pod_path():
    assert join_pod_path("https://p.example/alice/", "sub/b.txt") == "https://p.example/alice/sub/b.txt"
    assert join_pod_path("https://p.example/alice", "/a.txt") == "https://p.example/alice/a.txt"


class TestPodContentUploader:
    @pytest.mark.asyncio
    async def test_put_with_headers(self, alice):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201)

        session = SessionCredential(alice.web_id, "tok")
        async with _client(handler) as http:
            await PodContentUploader(http).upload(session, alice, b"data", "sub/b.txt", "application/octet-stream", 3)

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "PUT"
        assert str(request.url) == "https://pods.example.org/alice/sub/b.txt"
        assert request.headers["content-type"] == "application/octet-stream"
        assert request.headers["authorization"] == "Bearer tok"
        assert request.content == b"data"

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, alice):
        statuses = iter([503, 500, 205])
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(next(statuses))

        async with _client(handler) as http:
            await PodContentUploader(http).upload(
                SessionCredential(alice.web_id), alice, b"x", "a.txt", "text/plain", 5
            )

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_budget(self, alice):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="broken")

        async with _client(handler) as http:
            with pytest.raises(UploadError) as excinfo:
                await PodContentUploader(http).upload(
                    SessionCredential(alice.web_id), alice, b"x", "a.txt", "text/plain", 2
                )

        assert len(calls) == 3
        assert excinfo.value.retries == 2
        assert excinfo.value.status_code == 500

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, alice):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(403)

        async with _client(handler) as http:
            with pytest.raises(UploadError, match="403"):
                await PodContentUploader(http).upload(
                    SessionCredential(alice.web_id), alice, b"x", "a.txt", "text/plain", 10
                )

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transport_errors_retried(self, alice):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) < 2:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200)

        async with _client(handler) as http:
            await PodContentUploader(http).upload(
                SessionCredential(alice.web_id), alice, b"x", "a.txt", "text/plain", 1
            )

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_requires_context(self, alice):
        http = PodHTTPClient()
        with pytest.raises(RuntimeError, match="async with"):
            await PodContentUploader(http).upload(
                SessionCredential(alice.web_id), alice, b"x", "a.txt", "text/plain", 0
            )


class TestAuthzMetadataAttacher:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("flavor,suffix,marker", [
        (AuthzFlavor.WAC, ".acl", "acl:Authorization"),
        (AuthzFlavor.ACP, ".acr", "acp:AccessControlResource"),
    ])
    async def test_attach_document(self, alice, flavor, suffix, marker):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201)

        async with _client(handler) as http:
            await AuthzMetadataAttacher(http).attach(
                SessionCredential(alice.web_id), alice, "sub/", "b.txt", flavor, 1
            )

        request = requests[0]
        assert str(request.url) == f"https://pods.example.org/alice/sub/b.txt{suffix}"
        assert request.headers["content-type"] == "text/turtle"
        body = request.content.decode("utf-8")
        assert marker in body
        assert alice.web_id in body
        assert "<https://pods.example.org/alice/sub/b.txt>" in body

    @pytest.mark.asyncio
    async def test_failure_raises_metadata_error(self, alice):
        async with _client(lambda request: httpx.Response(409)) as http:
            with pytest.raises(MetadataError) as excinfo:
                await AuthzMetadataAttacher(http).attach(
                    SessionCredential(alice.web_id), alice, "", "a.txt", AuthzFlavor.WAC, 15
                )

        assert excinfo.value.retries == 15


class TestSpecialCharacters:
    @pytest.mark.parametrize("name,encoded", [
        ("a#b.txt", "a%23b.txt"),
        ("q?x=1.txt", "q%3Fx%3D1.txt"),
        ("50%25.txt", "50%2525.txt"),
        ("with space.txt", "with%20space.txt"),
    ])
    def test_join_pod_path_encodes_segments(self, name, encoded):
        assert join_pod_path("https://p.example/alice/", f"sub/{name}") == f"https://p.example/alice/sub/{encoded}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["a#b.txt", "q?x=1.txt", "50%25.txt"])
    async def test_content_and_acl_reach_distinct_resources(self, alice, name):
        paths = []

        def handler(request):
            paths.append((request.url.raw_path, request.url.query))
            return httpx.Response(201)

        session = SessionCredential(alice.web_id)
        async with _client(handler) as http:
            await PodContentUploader(http).upload(session, alice, b"x", f"sub/{name}", "text/plain", 0)
            await AuthzMetadataAttacher(http).attach(session, alice, "sub/", name, AuthzFlavor.WAC, 0)

        content_path, acl_path = paths
        assert content_path != acl_path
        assert acl_path[0] == content_path[0] + b".acl"
        assert content_path[1] == b"" and acl_path[1] == b""
        assert content_path[0].startswith(b"/alice/sub/")
        assert b"#" not in content_path[0] and b"?" not in content_path[0]
