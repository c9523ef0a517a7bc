"""Tests for the tag endpoints."""

from src.errors import NotFoundError


class TestTags:
    def test_list(self, client):
        response = client.get("/tags")

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["design", "roadmap"]

    def test_create_batch(self, client, mock_tags_service):
        response = client.post("/tags", json={"tags": ["design", "launch"]})

        assert response.status_code == 201
        assert [t["name"] for t in response.json()] == ["design", "launch"]
        mock_tags_service.create_tags.assert_awaited_once_with(["design", "launch"])

    def test_create_requires_names(self, client):
        response = client.post("/tags", json={"tags": []})
        assert response.status_code == 422

    def test_rename(self, client, mock_tags_service):
        response = client.put(
            "/tags", json={"tags": [{"id": "tag-a", "name": "Design system"}]}
        )

        assert response.status_code == 200
        assert response.json() == [{"id": "tag-a", "name": "Design system"}]
        mock_tags_service.rename_tags.assert_awaited_once_with([("tag-a", "Design system")])

    def test_rename_unknown_tag(self, client, mock_tags_service):
        mock_tags_service.rename_tags.side_effect = NotFoundError("Tag", "tag-x")

        response = client.put("/tags", json={"tags": [{"id": "tag-x", "name": "x"}]})

        assert response.status_code == 404

    def test_rename_duplicate_name(self, client, mock_tags_service):
        mock_tags_service.rename_tags.side_effect = ValueError("Tag name already in use")

        response = client.put("/tags", json={"tags": [{"id": "tag-a", "name": "roadmap"}]})

        assert response.status_code == 400
        assert response.json()["detail"] == "Tag name already in use"

    def test_delete_splits_ids(self, client, mock_tags_service):
        response = client.delete("/tags", params={"ids": "tag-a, tag-b,"})

        assert response.status_code == 200
        assert response.json() == {"is_affected": True, "deleted": 2}
        mock_tags_service.delete_tags.assert_awaited_once_with(["tag-a", "tag-b"])

    def test_delete_nothing_matched(self, client, mock_tags_service):
        mock_tags_service.delete_tags.return_value = 0

        response = client.delete("/tags", params={"ids": "tag-x"})

        assert response.json() == {"is_affected": False, "deleted": 0}

    def test_delete_blank_ids(self, client, mock_tags_service):
        response = client.delete("/tags", params={"ids": " , "})

        assert response.status_code == 400
        mock_tags_service.delete_tags.assert_not_awaited()
