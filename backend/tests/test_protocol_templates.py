"""Tests for /api/protocol-templates."""


class TestTemplateQueries:
    def test_list_is_wrapped(self, client, templates, trainer_headers):
        body = client.get("/api/protocol-templates", headers=trainer_headers).json()
        assert body["success"] is True
        assert body["count"] == len(body["data"]) == 5
        assert {t["id"] for t in body["data"]} >= {"weight-loss", "parasite-cleanse-gentle"}

    def test_filters(self, client, templates, trainer_headers):
        body = client.get("/api/protocol-templates?protocolType=parasite_cleanse", headers=trainer_headers).json()
        assert [t["id"] for t in body["data"]] == ["parasite-cleanse-gentle"]

        body = client.get("/api/protocol-templates?category=Inflammation", headers=trainer_headers).json()
        assert [t["id"] for t in body["data"]] == ["anti-inflammatory"]

    def test_requires_auth(self, client, templates):
        assert client.get("/api/protocol-templates").status_code == 401

    def test_categories(self, client, templates, trainer_headers):
        body = client.get("/api/protocol-templates/categories", headers=trainer_headers).json()
        assert {"category": "Weight Management", "templateCount": 1} in body["data"]

    def test_search(self, client, templates, trainer_headers):
        body = client.get("/api/protocol-templates/search?q=parasite", headers=trainer_headers).json()
        assert [t["id"] for t in body["data"]] == ["parasite-cleanse-gentle"]
        assert client.get("/api/protocol-templates/search?q=", headers=trainer_headers).status_code == 422

    def test_get_by_id(self, client, templates, trainer_headers):
        assert client.get("/api/protocol-templates/weight-loss", headers=trainer_headers).json()["data"]["protocolType"] == "longevity"
        assert client.get("/api/protocol-templates/missing", headers=trainer_headers).status_code == 404


class TestTemplateWrites:
    def test_trainer_creates_template(self, client, trainer, trainer_headers):
        response = client.post("/api/protocol-templates", json={
            "name": "Sleep Support",
            "category": "Sleep",
            "protocolType": "longevity",
            "content": {"phases": [{"name": "Wind down", "days": 14}]},
            "tags": ["sleep"],
        }, headers=trainer_headers)
        assert response.status_code == 201
        assert response.json()["data"]["category"] == "Sleep"

    def test_customer_cannot_create_template(self, client, customer, login):
        response = client.post(
            "/api/protocol-templates",
            json={"name": "Nope", "category": "Other"},
            headers=login(customer.email),
        )
        assert response.status_code == 403

    def test_generate_from_template(self, client, templates, trainer_headers):
        response = client.post("/api/protocol-templates/gut-restoration/generate", json={
            "protocolName": "Cam's gut plan",
            "customization": {
                "duration": 56,
                "intensity": "intensive",
                "personalizations": {"age": 40, "healthConditions": ["ibs", "bloating"], "experience": "beginner"},
            },
        }, headers=trainer_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Cam's gut plan"
        assert data["duration"] == 56
        assert data["intensity"] == "intensive"
        assert sum(p["days"] for p in data["config"]["phases"]) == 56
        assert "ibs" in data["tags"]
        assert data["config"]["personalization"]["healthConditions"] == ["bloating", "ibs"]

        popular = client.get("/api/protocol-templates/gut-restoration", headers=trainer_headers).json()["data"]
        assert popular["popularity"] == 1

    def test_generate_rejects_short_duration(self, client, templates, trainer_headers):
        response = client.post(
            "/api/protocol-templates/weight-loss/generate",
            json={"customization": {"duration": 3}},
            headers=trainer_headers,
        )
        assert response.status_code == 422
