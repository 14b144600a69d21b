"""图片附件处理单元测试。"""

import base64

import httpx
import pytest

from nele_proxy.exceptions import ImageURLError, UpstreamContractError, UpstreamResponseError
from nele_proxy.image_uploader import (
    ImageUploader,
    ensure_file_name_extension,
    extension_for_content_type,
    file_name_from_url,
    parse_data_url,
    parse_http_url,
)
from nele_proxy.models import ImageURL
from tests.fixtures import PNG_BYTES, PNG_DATA_URL, MockNeleBackend, json_response


@pytest.mark.unit
class TestParseDataUrl:
    """data URL 解析测试。"""

    def test_valid_data_url(self):
        data, content_type = parse_data_url(PNG_DATA_URL)
        assert data == PNG_BYTES
        assert content_type == "image/png"

    def test_base64_marker_is_case_insensitive(self):
        data, content_type = parse_data_url("data:image/gif;BASE64," + base64.b64encode(b"GIF89a").decode())
        assert data == b"GIF89a"
        assert content_type == "image/gif"

    def test_line_wrapped_payload(self):
        encoded = base64.b64encode(PNG_BYTES).decode()
        wrapped = "\r\n".join(encoded[i:i + 16] for i in range(0, len(encoded), 16))
        data, content_type = parse_data_url(f"data:image/png;base64,{wrapped}\n ")
        assert data == PNG_BYTES
        assert content_type == "image/png"

    def test_missing_media_type(self):
        data, content_type = parse_data_url("data:;base64,aGk=")
        assert data == b"hi"
        assert content_type == ""

    @pytest.mark.parametrize(
        "url",
        [
            "data:image/png;base64",  # 没有逗号
            "data:image/png,aGk=",  # 缺少 ;base64
            "data:image/png;base64,not*base64!",
        ],
    )
    def test_invalid_data_url(self, url):
        with pytest.raises(ImageURLError) as exc_info:
            parse_data_url(url)
        assert exc_info.value.message == "Invalid data URL for image_url."


@pytest.mark.unit
class TestFileNames:
    """文件名与扩展名推断测试。"""

    @pytest.mark.parametrize(
        "content_type, extension",
        [
            ("image/jpeg", "jpg"),
            ("image/jpg", "jpg"),
            ("IMAGE/PNG", "png"),
            ("image/webp", "webp"),
            ("image/gif", "gif"),
            ("image/svg+xml", "svg"),
            ("image/avif", "avif"),
            ("application/octet-stream", ""),
            ("", ""),
        ],
    )
    def test_extension_for_content_type(self, content_type, extension):
        assert extension_for_content_type(content_type) == extension

    def test_existing_extension_kept(self):
        assert ensure_file_name_extension("photo.jpeg", "image/png") == "photo.jpeg"

    def test_extension_appended(self):
        assert ensure_file_name_extension("image", "image/png") == "image.png"

    def test_unknown_type_leaves_name(self):
        assert ensure_file_name_extension("blob", "text/plain") == "blob"

    def test_file_name_from_url(self):
        assert file_name_from_url(httpx.URL("https://cdn.test/a/b/cat%20one.png?x=1")) == "cat one.png"
        assert file_name_from_url(httpx.URL("https://cdn.test/")) == "image"

    @pytest.mark.parametrize("url", ["ftp://cdn.test/cat.png", "/relative/cat.png", "cat.png"])
    def test_non_http_url_rejected(self, url):
        with pytest.raises(ImageURLError) as exc_info:
            parse_http_url(url)
        assert exc_info.value.message == "image_url must be a data URL or an http(s) URL."


@pytest.fixture
def uploader(backend: MockNeleBackend, api_key: str) -> ImageUploader:
    return ImageUploader(backend.nele_client(), backend.download_client(), api_key)


@pytest.mark.unit
class TestImageUploader:
    """图片上传流程测试。"""

    @pytest.mark.asyncio
    async def test_data_url_upload(self, uploader, backend, api_key):
        backend.on("POST", "image-attachment", json_response({"path": "/files/abc.png"}))

        attachment = await uploader.upload(ImageURL(url=PNG_DATA_URL, detail="high"))

        assert attachment.model_dump(exclude_none=True) == {
            "type": "image",
            "id": "/files/abc.png",
            "name": "image.png",
            "content": "/files/abc.png",
            "detail": "high",
        }
        upload = backend.calls("POST", "image-attachment")[0]
        assert upload.headers["Authorization"] == f"Bearer {api_key}"
        assert upload.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="file"; filename="image.png"' in upload.content
        assert b"Content-Type: image/png" in upload.content
        assert PNG_BYTES in upload.content

    @pytest.mark.asyncio
    async def test_http_url_download_and_upload(self, uploader, backend):
        backend.on(
            "GET",
            "https://images.test/photos/cat",
            httpx.Response(200, content=b"jpegbytes", headers={"Content-Type": "image/jpeg; charset=binary"}),
        )
        backend.on("POST", "image-attachment", json_response({"path": "/files/cat.jpg"}))

        attachment = await uploader.upload(ImageURL(url="https://images.test/photos/cat"))

        assert attachment.name == "cat.jpg"
        assert attachment.detail is None
        upload = backend.calls("POST", "image-attachment")[0]
        assert b'filename="cat.jpg"' in upload.content
        assert b"jpegbytes" in upload.content

    @pytest.mark.asyncio
    async def test_download_failure(self, uploader, backend):
        backend.on("GET", "https://images.test/missing.png", httpx.Response(404))

        with pytest.raises(ImageURLError) as exc_info:
            await uploader.upload(ImageURL(url="https://images.test/missing.png"))

        assert exc_info.value.message == "Failed to download image_url: 404 Not Found."
        assert backend.calls("POST", "image-attachment") == []

    @pytest.mark.asyncio
    async def test_upload_rejected_is_forwarded(self, uploader, backend):
        backend.on(
            "POST",
            "image-attachment",
            httpx.Response(413, content=b'{"message":"too large"}', headers={"Content-Type": "application/json"}),
        )

        with pytest.raises(UpstreamResponseError) as exc_info:
            await uploader.upload(ImageURL(url=PNG_DATA_URL))

        assert exc_info.value.status_code == 413
        assert exc_info.value.body == b'{"message":"too large"}'

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body, code",
        [
            ({"id": "x"}, "image_attachment_missing_path"),
            ({"path": "  "}, "image_attachment_empty_path"),
            ({"path": None}, "image_attachment_empty_path"),
        ],
    )
    async def test_upload_without_path(self, uploader, backend, body, code):
        backend.on("POST", "image-attachment", json_response(body))

        with pytest.raises(UpstreamContractError) as exc_info:
            await uploader.upload(ImageURL(url=PNG_DATA_URL))

        assert exc_info.value.status_code == 502
        assert exc_info.value.code == code
