"""Unit tests for the drive API client."""

import json
import re
from unittest.mock import Mock
from urllib.parse import parse_qs

import httpx
import pytest

from pydrivemirror.api import DriveClient
from pydrivemirror.auth import CredentialStore
from pydrivemirror.config import MirrorConfig
from pydrivemirror.exceptions import (
    AuthError,
    LocalIoError,
    MalformedResponse,
    RemoteApiError,
    TokenExpiredError,
)
from pydrivemirror.utils import FOLDER_MIME_TYPE


@pytest.fixture
def config(tmp_path):
    """Create a configuration with test credentials."""
    return MirrorConfig(
        client_id="client-id",
        client_secret="client-secret",
        refresh_token="refresh-token",
        root_directory=tmp_path,
    )


class Recorder:
    """Collects requests and answers them with queued responses per URL."""

    def __init__(self, config):
        self.config = config
        self.requests = []
        self.token_responses = []
        self.api_responses = []
        self.upload_responses = []

    def __call__(self, request):
        self.requests.append(request)
        url = str(request.url)
        if url == self.config.token_url:
            return self.token_responses.pop(0)
        if url == self.config.upload_url:
            return self.upload_responses.pop(0)
        if url == self.config.api_url:
            return self.api_responses.pop(0)
        return httpx.Response(404)

    def for_url(self, url):
        return [r for r in self.requests if str(r.url) == url]


@pytest.fixture
def recorder(config):
    return Recorder(config)


@pytest.fixture
def client(config, recorder):
    """Create a DriveClient backed by the recorder transport."""
    http = httpx.Client(transport=httpx.MockTransport(recorder))
    return DriveClient(config, CredentialStore("token-1"), http=http)


def metadata_part(request):
    """Extract the JSON metadata part of a multipart upload body."""
    match = re.search(rb'\{"name": .*?\]\}', request.content)
    assert match is not None
    return json.loads(match.group(0))


class TestDriveClientInit:
    """Tests for DriveClient construction."""

    def test_creates_refresher_sharing_http_client(self, config):
        """Test that the default refresher uses the client's HTTP session."""
        client = DriveClient(config, CredentialStore())
        try:
            assert client.refresher.http is client.http
            assert client.refresher.store is client.store
        finally:
            client.close()
        assert client.http.is_closed

    def test_does_not_close_external_http_client(self, config):
        """Test that a passed-in HTTP client is left open."""
        http = httpx.Client()
        with DriveClient(config, CredentialStore(), http=http):
            pass
        assert not http.is_closed
        http.close()


class TestCreateFolder:
    """Tests for create_folder."""

    def test_create_root_folder(self, client, recorder, config):
        """Test creating a folder without parent."""
        recorder.api_responses.append(httpx.Response(200, json={"id": "folder-1"}))

        assert client.create_folder("ImportantFiles") == "folder-1"

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == config.api_url
        assert request.headers["Authorization"] == "Bearer token-1"
        assert json.loads(request.content) == {
            "name": "ImportantFiles",
            "mimeType": FOLDER_MIME_TYPE,
        }

    def test_create_child_folder(self, client, recorder):
        """Test that the parent id is sent as a single-element list."""
        recorder.api_responses.append(httpx.Response(200, json={"id": "folder-2"}))

        assert client.create_folder("b", parent_id="folder-1") == "folder-2"

        body = json.loads(recorder.requests[0].content)
        assert body["parents"] == ["folder-1"]

    def test_missing_id_raises_malformed_response(self, client, recorder):
        """Test that a success response without id is malformed."""
        recorder.api_responses.append(httpx.Response(200, json={"name": "b"}))

        with pytest.raises(MalformedResponse, match="no id in response"):
            client.create_folder("b", parent_id="folder-1")

    def test_non_json_success_raises_malformed_response(self, client, recorder):
        """Test that a success response with an unparsable body is malformed."""
        recorder.api_responses.append(httpx.Response(200, text="ok"))

        with pytest.raises(MalformedResponse):
            client.create_folder("b")

    def test_server_error_raises_remote_api_error(self, client, recorder):
        """Test that other statuses carry status and body."""
        recorder.api_responses.append(
            httpx.Response(500, text="backend unavailable")
        )

        with pytest.raises(RemoteApiError) as exc_info:
            client.create_folder("b")

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "backend unavailable"
        assert "backend unavailable" in str(exc_info.value)

    def test_forbidden_does_not_refresh(self, client, recorder, config):
        """Test that 403 is a plain API error without a token refresh."""
        recorder.api_responses.append(httpx.Response(403, text="forbidden"))

        with pytest.raises(RemoteApiError):
            client.create_folder("b")

        assert recorder.for_url(config.token_url) == []

    def test_unauthorized_refreshes_once_and_asks_caller_to_retry(
        self, client, recorder, config
    ):
        """Test that 401 triggers exactly one refresh and no automatic retry."""
        recorder.api_responses.append(httpx.Response(401, text="expired"))
        recorder.token_responses.append(
            httpx.Response(200, json={"access_token": "token-2"})
        )

        with pytest.raises(TokenExpiredError):
            client.create_folder("b")

        assert len(recorder.for_url(config.token_url)) == 1
        assert len(recorder.for_url(config.api_url)) == 1
        assert client.store.read() == "token-2"

    def test_calls_after_refresh_use_new_token(self, client, recorder, config):
        """Test that requests issued after a refresh carry the new token."""
        recorder.api_responses.append(httpx.Response(401))
        recorder.token_responses.append(
            httpx.Response(200, json={"access_token": "token-2"})
        )
        recorder.api_responses.append(httpx.Response(200, json={"id": "folder-9"}))

        with pytest.raises(TokenExpiredError):
            client.create_folder("b")
        assert client.create_folder("b") == "folder-9"

        api_requests = recorder.for_url(config.api_url)
        assert api_requests[0].headers["Authorization"] == "Bearer token-1"
        assert api_requests[1].headers["Authorization"] == "Bearer token-2"

    def test_failed_refresh_raises_auth_error(self, client, recorder):
        """Test that a failing refresh surfaces as AuthError."""
        recorder.api_responses.append(httpx.Response(401))
        recorder.token_responses.append(httpx.Response(400, text="invalid_grant"))

        with pytest.raises(AuthError) as exc_info:
            client.create_folder("b")

        assert not isinstance(exc_info.value, TokenExpiredError)
        assert client.store.read() == "token-1"

    def test_network_error_raises_remote_api_error(self, config):
        """Test that transport failures become RemoteApiError."""

        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        http = httpx.Client(transport=httpx.MockTransport(handler))
        client = DriveClient(config, CredentialStore("t"), http=http)

        with pytest.raises(RemoteApiError, match="network error") as exc_info:
            client.create_folder("b")
        assert exc_info.value.status_code is None

    def test_undecodable_name_is_replaced(self, client, recorder):
        """Test that surrogate-escaped bytes are sent as U+FFFD."""
        recorder.api_responses.append(httpx.Response(200, json={"id": "folder-3"}))

        assert client.create_folder("bad\udcff", parent_id="folder-1") == "folder-3"

        body = json.loads(recorder.requests[0].content)
        assert body["name"] == "bad\ufffd"

    def test_request_encoding_error_raises_remote_api_error(self, config):
        """Test that errors while building the request become RemoteApiError."""
        http = Mock(spec=httpx.Client)
        http.post.side_effect = UnicodeEncodeError(
            "utf-8", "\udcff", 0, 1, "surrogates not allowed"
        )
        client = DriveClient(config, CredentialStore("t"), http=http)

        with pytest.raises(RemoteApiError, match="invalid request"):
            client.create_folder("b")


class TestUploadFile:
    """Tests for upload_file."""

    def test_upload_sends_metadata_and_content(self, client, recorder, config, tmp_path):
        """Test the multipart body of an upload."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"0123456789")
        recorder.upload_responses.append(httpx.Response(200, json={"id": "file-1"}))

        result = client.upload_file(path, "folder-1")

        assert result == {"id": "file-1"}
        request = recorder.requests[0]
        assert str(request.url) == config.upload_url
        assert request.headers["Authorization"] == "Bearer token-1"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert metadata_part(request) == {"name": "a.txt", "parents": ["folder-1"]}
        assert b"0123456789" in request.content
        assert b"application/octet-stream" in request.content

    def test_upload_empty_response_body(self, client, recorder, tmp_path):
        """Test that an empty success body returns an empty dict."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"x")
        recorder.upload_responses.append(httpx.Response(204))

        assert client.upload_file(path, "folder-1") == {}

    def test_missing_file_raises_local_io_error(self, client, recorder, tmp_path):
        """Test that a vanished file fails before any request is sent."""
        path = tmp_path / "gone.txt"

        with pytest.raises(LocalIoError) as exc_info:
            client.upload_file(path, "folder-1")

        assert exc_info.value.path == path
        assert recorder.requests == []

    def test_upload_unauthorized_refreshes(self, client, recorder, config, tmp_path):
        """Test that a 401 on upload refreshes the token once."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"x")
        recorder.upload_responses.append(httpx.Response(401))
        recorder.token_responses.append(
            httpx.Response(200, json={"access_token": "token-2"})
        )

        with pytest.raises(TokenExpiredError):
            client.upload_file(path, "folder-1")

        assert len(recorder.for_url(config.token_url)) == 1
        assert len(recorder.for_url(config.upload_url)) == 1
        assert client.store.read() == "token-2"

    def test_upload_rejected_raises_remote_api_error(self, client, recorder, tmp_path):
        """Test that a rejected upload carries status and body."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"x")
        recorder.upload_responses.append(httpx.Response(413, text="too large"))

        with pytest.raises(RemoteApiError) as exc_info:
            client.upload_file(path, "folder-1")

        assert exc_info.value.status_code == 413
        assert exc_info.value.body == "too large"


def test_token_form_is_urlencoded(client, recorder, config):
    """Test that the refresh triggered by the client posts a form body."""
    recorder.api_responses.append(httpx.Response(401))
    recorder.token_responses.append(
        httpx.Response(200, json={"access_token": "token-2"})
    )

    with pytest.raises(TokenExpiredError):
        client.create_folder("b")

    token_request = recorder.for_url(config.token_url)[0]
    assert parse_qs(token_request.content.decode())["grant_type"] == [
        "refresh_token"
    ]
