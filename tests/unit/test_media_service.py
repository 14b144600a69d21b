"""语音转写与图片生成服务单元测试。"""

import pytest

from nele_proxy.exceptions import InvalidRequestError
from nele_proxy.media_service import (
    build_image_payload,
    map_transcription_model,
    validate_image_request,
)
from nele_proxy.models import ImageGenerationRequest


def image_request(**data) -> ImageGenerationRequest:
    return ImageGenerationRequest.model_validate({"prompt": "a cat", "model": "dall-e-3", **data})


@pytest.mark.unit
class TestTranscriptionModel:

    @pytest.mark.parametrize(
        "model, expected",
        [
            (None, "azure-whisper"),
            ("", "azure-whisper"),
            ("whisper-1", "azure-whisper"),
            ("azure-whisper", "azure-whisper"),
            ("custom-stt", "custom-stt"),
        ],
    )
    def test_model_mapping(self, model, expected):
        assert map_transcription_model(model) == expected


@pytest.mark.unit
class TestValidateImageRequest:
    """图片生成参数校验测试。"""

    def test_valid_request(self):
        validate_image_request(image_request(response_format="URL", n=1))

    @pytest.mark.parametrize("data", [{"prompt": ""}, {"model": "  "}, {"prompt": None}])
    def test_missing_fields(self, data):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_image_request(image_request(**data))
        assert exc_info.value.code == "missing_fields"

    def test_b64_json_rejected(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_image_request(image_request(response_format="b64_json"))
        assert exc_info.value.code == "unsupported_response_format"

    @pytest.mark.parametrize("n", [2, 3.5])
    def test_multiple_images_rejected(self, n):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_image_request(image_request(n=n))
        assert exc_info.value.code == "unsupported_n"

    @pytest.mark.parametrize("n", [None, 1, "2", True])
    def test_other_n_values_accepted(self, n):
        validate_image_request(image_request(n=n))


@pytest.mark.unit
class TestBuildImagePayload:
    """后端图片请求体测试。"""

    def test_defaults_for_dalle(self):
        assert build_image_payload(image_request()) == {
            "model": "dall-e-3",
            "prompt": "a cat",
            "modelConfiguration": {"quality": "standard", "size": "1024x1024"},
        }

    def test_defaults_for_gpt_image(self):
        payload = build_image_payload(image_request(model="gpt-image-1"))
        assert payload["modelConfiguration"] == {"quality": "auto", "size": "auto"}

    def test_explicit_options_forwarded(self):
        payload = build_image_payload(
            image_request(quality="hd", size="1792x1024", style="vivid", background="transparent")
        )
        assert payload["modelConfiguration"] == {
            "quality": "hd",
            "size": "1792x1024",
            "style": "vivid",
            "background": "transparent",
        }
