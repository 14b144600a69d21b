"""模型服务单元测试。"""

import pytest

from nele_proxy.model_service import find_model, flatten_models, iter_catalog_ids

CATALOG = {
    "models": [
        {"id": "gpt-4o", "name": "GPT-4o"},
        {"id": "  "},
        {"name": "no id"},
        "not-an-object",
        {"id": 7},
    ],
    "team_models": [{"id": "team-claude"}],
    "image_generators": [{"id": "dall-e-3"}, {"id": "gpt-image-1"}],
    "voices": [{"id": "not-listed"}],
}


@pytest.mark.unit
class TestCatalog:
    """模型目录展平测试。"""

    def test_iter_catalog_ids(self):
        assert list(iter_catalog_ids(CATALOG)) == ["gpt-4o", "team-claude", "dall-e-3", "gpt-image-1"]

    def test_non_array_sections_skipped(self):
        assert list(iter_catalog_ids({"models": {"id": "x"}, "team_models": None})) == []

    def test_flatten_models(self):
        response = flatten_models(CATALOG, created=1700000000)
        assert response.object == "list"
        assert [m.model_dump() for m in response.data][:1] == [
            {"id": "gpt-4o", "object": "model", "created": 1700000000, "owned_by": "nele"}
        ]
        assert len(response.data) == 4

    def test_empty_catalog(self):
        assert flatten_models({}).data == []


@pytest.mark.unit
class TestFindModel:

    def test_case_insensitive_match_keeps_requested_id(self):
        model = find_model(CATALOG, "GPT-4O", created=1)
        assert model is not None
        assert model.id == "GPT-4O"
        assert model.owned_by == "nele"

    def test_image_generators_included(self):
        assert find_model(CATALOG, "dall-e-3") is not None

    def test_not_found(self):
        assert find_model(CATALOG, "not-listed") is None
