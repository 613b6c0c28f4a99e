from types import SimpleNamespace

import pytest
import requests

from voterroll.config import RemoteConfig
from voterroll.exceptions import RemoteConversionError
from voterroll.processors import RemoteConverter


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []

    def post(self, url, files=None, timeout=None):
        self.posts.append({"url": url, "files": files, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def response(status=200, content=b""):
    return SimpleNamespace(
        ok=200 <= status < 300,
        status_code=status,
        content=content,
        text=content.decode("utf-8", errors="replace"),
        reason="Server Error",
    )


@pytest.fixture
def pdf(tmp_path):
    path = tmp_path / "roll.pdf"
    path.write_bytes(b"%PDF-1.4\n")
    return path


def test_convert_uploads_multipart_and_decodes_utf8(pdf):
    body = "\ufeffSerial No,EPIC No\n1,ABC1234567,రవి".encode("utf-8")
    session = FakeSession(response(200, body))
    converter = RemoteConverter(RemoteConfig(url="https://convert.example/api", timeout_sec=30), session)

    assert converter.convert(pdf).endswith("రవి")
    post = session.posts[0]
    assert post["url"] == "https://convert.example/api"
    assert post["timeout"] == 30
    name, _, mime = post["files"]["file"]
    assert (name, mime) == ("roll.pdf", "application/pdf")


def test_non_2xx_raises_with_status(pdf):
    session = FakeSession(response(502, b"bad gateway"))
    converter = RemoteConverter(RemoteConfig(url="https://convert.example/api"), session)

    with pytest.raises(RemoteConversionError) as exc:
        converter.convert(pdf)
    assert exc.value.details["status_code"] == 502


def test_unreachable_endpoint_raises(pdf):
    session = FakeSession(error=requests.ConnectionError("refused"))
    converter = RemoteConverter(RemoteConfig(url="https://convert.example/api"), session)

    with pytest.raises(RemoteConversionError, match="unreachable"):
        converter.convert(pdf)


def test_unconfigured_endpoint_raises_without_request(pdf):
    session = FakeSession()
    converter = RemoteConverter(RemoteConfig(url=""), session)

    with pytest.raises(RemoteConversionError):
        converter.convert(pdf)
    assert session.posts == []
