"""
Tests for transport.py
"""
import httpx
import pytest

from token_injector import HttpxTransport, Stage, TransportError, TransportResponse, create_transport

from conftest import RecordingHandler, mock_transport


class TestHttpxTransport:
    def test_send(self):
        handler = RecordingHandler(httpx.Response(201, content=b'{"ok": true}', headers={"X-Trace": "t1"}))
        transport = mock_transport(handler)

        response = transport.send(
            "POST", "https://auth.example.com/login", {"Content-Type": "application/json"}, b"{}"
        )

        assert response.status_code == 201
        assert response.body == b'{"ok": true}'
        assert response.headers["x-trace"] == "t1"
        assert response.ok is True
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/json"
        assert request.content == b"{}"

    def test_non_2xx_returned_not_raised(self):
        transport = mock_transport(RecordingHandler(httpx.Response(500, content=b"err")))

        response = transport.send("GET", "https://auth.example.com/login")

        assert response.status_code == 500
        assert response.ok is False

    def test_wire_failure(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        transport = mock_transport(handler)

        with pytest.raises(TransportError) as exc_info:
            transport.send("GET", "https://auth.example.com/login")

        assert exc_info.value.stage is Stage.TRANSPORT
        assert exc_info.value.url == "https://auth.example.com/login"
        assert exc_info.value.status_code is None

    def test_non_ascii_header_value(self):
        handler = RecordingHandler(httpx.Response(200))
        transport = mock_transport(handler)

        with pytest.raises(TransportError) as exc_info:
            transport.send("POST", "https://auth.example.com/login", {"X-User": "jürgen"})

        assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)
        assert handler.calls == 0

    def test_invalid_url(self):
        transport = create_transport()
        try:
            with pytest.raises(TransportError):
                transport.send("GET", "not a url")
        finally:
            transport.close()

    def test_closed_transport(self):
        transport = mock_transport(RecordingHandler(httpx.Response(200)))
        transport.close()

        with pytest.raises(RuntimeError):
            transport.send("GET", "https://auth.example.com")

    def test_injected_client_not_closed(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        with HttpxTransport(httpx_client=client):
            pass

        assert client.is_closed is False
        client.close()

    def test_owned_client_closed(self):
        transport = HttpxTransport(timeout_seconds=1.0)
        transport.close()

        assert transport._client.is_closed is True


class TestTransportResponse:
    @pytest.mark.parametrize("status, ok", [(200, True), (201, True), (299, True), (301, False), (404, False)])
    def test_ok(self, status, ok):
        assert TransportResponse(status_code=status).ok is ok
