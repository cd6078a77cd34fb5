"""
HTTP tests for the FastAPI application.

Collaborators are swapped through app.dependency_overrides; the lifespan is
not entered, so no durable index connection is attempted.
"""
import pytest
from fastapi.testclient import TestClient

from siteassist.api.routes.dependencies import get_fetcher, get_pipeline, get_registry, get_store
from siteassist.main import app
from siteassist.vectorstore.vector_store import VectorStore

from helpers import DIMENSION, FailingForFetcher, FakeDurableBackend, FakeFetcher, backend_factory, run, sample_document


PREFIX = "/api/v1"


@pytest.fixture
def client(registry, fallback_store, pipeline):
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_store] = lambda: fallback_store
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_fetcher] = lambda: FakeFetcher(sample_document())
    yield TestClient(app)
    app.dependency_overrides.clear()


def _issue(client, **body):
    body.setdefault("user_id", "user-1")
    response = client.post(f"{PREFIX}/keys", json=body)
    assert response.status_code == 200
    return response.json()["data"]["api_key"]["key"]


def _create_project(client):
    response = client.post(f"{PREFIX}/projects", json={
        "url": "https://docs.example.com/pricing",
        "name": "Docs",
        "user_id": "user-1",
    })
    assert response.status_code == 200
    return response.json()["data"]


# ============================================================================
# KEY MANAGEMENT TESTS
# ============================================================================


class TestKeyEndpoints:
    """Test key CRUD over HTTP."""

    def test_issue_returns_full_token(self, client):
        response = client.post(f"{PREFIX}/keys", json={"user_id": "user-1", "rate_limit": 10})

        data = response.json()
        assert response.status_code == 200
        assert data["success"] is True
        assert data["data"]["api_key"]["key"].startswith("ai_assist_")
        assert data["data"]["api_key"]["rateLimit"] == 10

    def test_issue_requires_owner(self, client):
        response = client.post(f"{PREFIX}/keys", json={"user_id": ""})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "request_id" in response.json()

    def test_list_is_masked(self, client):
        token = _issue(client)

        response = client.get(f"{PREFIX}/keys", params={"user_id": "user-1"})

        data = response.json()["data"]
        assert data["total"] == 1
        assert data["keys"][0]["key"] != token
        assert "..." in data["keys"][0]["key"]

    def test_list_requires_user_id(self, client):
        response = client.get(f"{PREFIX}/keys")

        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"

    def test_details(self, client):
        token = _issue(client, project_id="project_1")

        response = client.get(f"{PREFIX}/keys/{token}", params={"user_id": "user-1"})

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["apiKey"]["projectId"] == "project_1"
        assert data["recentUsage"] == []
        assert data["apiKey"]["key"] != token

    def test_project_lookup(self, client):
        _issue(client, project_id="project_1")

        found = client.get(f"{PREFIX}/keys/project/project_1", params={"user_id": "user-1"})
        missing = client.get(f"{PREFIX}/keys/project/project_1", params={"user_id": "user-2"})

        assert found.status_code == 200
        assert missing.status_code == 404

    def test_update(self, client):
        token = _issue(client)

        response = client.put(
            f"{PREFIX}/keys/{token}",
            params={"user_id": "user-1"},
            json={"rateLimit": 5, "allowedDomains": ["example.com"]},
        )

        data = response.json()["data"]["api_key"]
        assert response.status_code == 200
        assert data["rateLimit"] == 5
        assert data["metadata"]["allowedDomains"] == ["example.com"]

    def test_update_by_other_owner_is_not_found(self, client):
        token = _issue(client)

        response = client.put(
            f"{PREFIX}/keys/{token}",
            params={"user_id": "user-2"},
            json={"description": "mine now"},
        )

        assert response.status_code == 404

    def test_revoke(self, client):
        token = _issue(client)

        response = client.delete(f"{PREFIX}/keys/{token}", params={"user_id": "user-1"})
        after = client.get(f"{PREFIX}/keys/{token}", params={"user_id": "user-1"})

        assert response.json() == {"success": True, "message": "API key deleted successfully"}
        assert after.status_code == 404

    def test_stats(self, client):
        _issue(client, project_id="project_1")
        _issue(client, user_id="user-2")

        data = client.get(f"{PREFIX}/keys/stats").json()["data"]

        assert data["totalKeys"] == 2
        assert data["activeKeys"] == 2
        assert data["totalProjects"] == 1


# ============================================================================
# PROJECT AND RETRIEVAL TESTS
# ============================================================================


class TestProjectAndRetrieval:
    """Test project creation followed by key-gated retrieval."""

    def test_create_project(self, client):
        project = _create_project(client)

        assert project["api_key"].startswith("learn_")
        assert project["embedding_count"] == 9
        assert project["status"] == "ready"
        assert project["content_types"] == ["mainContent", "navigation", "interactive", "informational"]

    def test_create_project_requires_url_and_name(self, client):
        response = client.post(f"{PREFIX}/projects", json={"url": "", "name": ""})

        assert response.status_code == 400
        assert response.json()["error"] == "URL and project name are required"

    def test_retrieve(self, client, provider):
        provider.fixed["Pricing plans"] = [1.0] + [0.0] * (DIMENSION - 1)
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/retrieve/explain",
            headers={"x-api-key": project["api_key"], "Origin": "https://docs.example.com"},
            json={"query": "Pricing plans"},
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["feature"] == "explain"
        assert data["project_id"] == project["id"]
        assert data["fragments"][0]["score"] == pytest.approx(1.0)
        assert "Pricing plans" in data["fragments"][0]["text"]

    def test_bearer_header_accepted(self, client):
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/retrieve/chat",
            headers={"Authorization": f"Bearer {project['api_key']}"},
            json={"query": "What does it cost?"},
        )

        assert response.status_code == 200

    def test_missing_key(self, client):
        response = client.post(f"{PREFIX}/retrieve/explain", json={"query": "How is pricing structured?"})

        assert response.status_code == 401
        assert response.json()["error"] == "API key required"

    def test_unknown_key(self, client):
        response = client.post(
            f"{PREFIX}/retrieve/explain",
            headers={"x-api-key": "learn_nope"},
            json={"query": "Pricing"},
        )

        assert response.status_code == 401

    def test_foreign_origin(self, client):
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/retrieve/explain",
            headers={"x-api-key": project["api_key"], "Origin": "https://evil.test"},
            json={"query": "Pricing"},
        )

        assert response.status_code == 403

    def test_feature_not_granted(self, client):
        token = _issue(client, project_id="project_1", features=["chat"])

        response = client.post(
            f"{PREFIX}/retrieve/analyze",
            headers={"x-api-key": token},
            json={"query": "Pricing"},
        )

        assert response.status_code == 403

    def test_unknown_feature(self, client):
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/retrieve/summarize",
            headers={"x-api-key": project["api_key"]},
            json={"query": "Pricing"},
        )

        assert response.status_code == 400
        assert response.json()["details"]["supported"] == ["explain", "chat", "analyze"]

    def test_rate_limit(self, client):
        token = _issue(client, project_id="project_1", rate_limit=1)
        headers = {"x-api-key": token}

        first = client.post(f"{PREFIX}/retrieve/chat", headers=headers, json={"query": "How is pricing structured?"})
        second = client.post(f"{PREFIX}/retrieve/chat", headers=headers, json={"query": "How is pricing structured?"})

        assert first.status_code == 200
        assert second.status_code == 403
        assert second.json()["details"]["rate_limit"] == 1


# ============================================================================
# EMBEDDINGS AND HEALTH TESTS
# ============================================================================


class TestEmbeddingsAndHealth:
    """Test index statistics, direct search and health reporting."""

    def test_embedding_stats(self, client):
        _create_project(client)

        data = client.get(f"{PREFIX}/embeddings/stats").json()["data"]

        assert data["state"] == "fallback"
        assert data["total_vectors"] == 10
        assert data["dimension"] == DIMENSION

    def test_embedding_query(self, client, provider):
        provider.fixed["Enterprise"] = [0.0, 1.0] + [0.0] * (DIMENSION - 2)
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/embeddings/query",
            headers={"x-api-key": project["api_key"]},
            json={"query": "Enterprise support", "content_type": "informational", "top_k": 1},
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["total_results"] == 1
        assert data["results"][0]["namespace"] == f"{project['id']}_informational"
        assert data["results"][0]["score"] == pytest.approx(1.0)

    def test_embedding_query_by_unit_type(self, client):
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/embeddings/query",
            headers={"x-api-key": project["api_key"]},
            json={"query": "Which plans exist?", "content_type": "informational", "unit_types": ["list"]},
        )

        results = response.json()["data"]["results"]
        assert len(results) == 1
        assert results[0]["metadata"]["type"] == "list"

    def test_health_degraded_in_fallback(self, client, fallback_store):
        run(fallback_store.initialize())

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["services"]["vector_store"] == "fallback"

    def test_health_durable(self, client):
        store = VectorStore(backend_factory=backend_factory(FakeDurableBackend()), dimension=DIMENSION)
        run(store.initialize())
        app.dependency_overrides[get_store] = lambda: store

        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["services"]["vector_store"] == "durable"

    def test_request_id_header(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["X-Request-ID"]


# ============================================================================
# STORE, WIDGET AND SCRAPE TESTS
# ============================================================================


class TestEmbeddingStore:
    """Test free-text storage under a project key."""

    def test_store_plain_text(self, client):
        project = _create_project(client)
        text = " ".join(f"word{i}" for i in range(1000))

        response = client.post(
            f"{PREFIX}/embeddings/store",
            headers={"x-api-key": project["api_key"]},
            json={"content": text, "metadata": {"source": "faq"}},
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["vectors_stored"] == 2
        assert data["chunks_processed"] == 2
        assert data["errors"] == 0
        assert data["namespace"] == f"{project['id']}_data"
        assert data["vector_ids"] == [VectorStore.generate_id("content", 0), VectorStore.generate_id("content", 1)]

    def test_store_scraped_document_then_query(self, client):
        project = _create_project(client)
        document = sample_document("https://docs.example.com/faq").model_dump()

        stored = client.post(
            f"{PREFIX}/embeddings/store",
            headers={"x-api-key": project["api_key"]},
            json={"content": document},
        )
        found = client.post(
            f"{PREFIX}/embeddings/query",
            headers={"x-api-key": project["api_key"]},
            json={
                "query": "What plans are there?",
                "content_type": "data",
                "source_url": "https://docs.example.com/faq",
            },
        )

        assert stored.json()["data"]["vector_ids"] == [VectorStore.generate_id("https://docs.example.com/faq", 0)]
        results = found.json()["data"]["results"]
        assert [r["id"] for r in results] == [VectorStore.generate_id("https://docs.example.com/faq", 0)]
        assert results[0]["metadata"]["title"] == "Example Pricing"
        assert results[0]["metadata"]["headingsCount"] == 2

    def test_store_requires_project_key(self, client):
        token = _issue(client)

        response = client.post(
            f"{PREFIX}/embeddings/store",
            headers={"x-api-key": token},
            json={"content": "Some text that would otherwise be long enough to keep."},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "API key is not bound to a project"

    def test_store_requires_content(self, client):
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/embeddings/store",
            headers={"x-api-key": project["api_key"]},
            json={"content": "   "},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Content is required"

    def test_store_requires_key(self, client):
        response = client.post(f"{PREFIX}/embeddings/store", json={"content": "text"})

        assert response.status_code == 401


class TestWidgetStatus:
    """Test the widget's view of its key."""

    def test_status(self, client):
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/widget/status",
            headers={"x-api-key": project["api_key"]},
            json={"url": "https://blog.docs.example.com/post"},
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["domain_allowed"] is True
        assert data["config"]["project_id"] == project["id"]
        assert data["config"]["allowed_domains"] == ["docs.example.com"]
        assert data["config"]["usage"]["requests_this_hour"] == 1
        assert data["rate_limit_status"]["remaining"] == data["config"]["usage"]["rate_limit"] - 1
        assert data["rate_limit_status"]["reset_time"] == "2026-01-01T13:00:00+00:00"

    def test_foreign_page(self, client):
        project = _create_project(client)

        response = client.post(
            f"{PREFIX}/widget/status",
            headers={"x-api-key": project["api_key"]},
            json={"url": "https://evil.test/page"},
        )

        assert response.json()["data"]["domain_allowed"] is False

    def test_requires_explain_feature(self, client):
        token = _issue(client)

        response = client.post(f"{PREFIX}/widget/status", headers={"x-api-key": token}, json={})

        assert response.status_code == 403


class TestScrape:
    """Test page fetching without storage."""

    def test_scrape(self, client):
        response = client.post(f"{PREFIX}/scrape", json={"url": "https://docs.example.com/pricing"})

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["title"] == "Example Pricing"
        assert data["text_for_embedding"].startswith("Title: Example Pricing")
        assert "scraped_at" in data

    def test_scrape_validation(self, client):
        missing = client.post(f"{PREFIX}/scrape", json={})
        invalid = client.post(f"{PREFIX}/scrape", json={"url": "not a url"})

        assert missing.status_code == 400
        assert missing.json()["error"] == "URL is required"
        assert invalid.status_code == 400
        assert invalid.json()["error"] == "Invalid URL format: not a url"

    def test_batch(self, client):
        app.dependency_overrides[get_fetcher] = lambda: FailingForFetcher(sample_document(), failing="broken")

        response = client.post(f"{PREFIX}/scrape/batch", json={
            "urls": ["https://a.test/one", "https://a.test/broken"],
        })

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["summary"] == {"total": 2, "successful": 1, "failed": 1}
        assert data["results"][0]["url"] == "https://a.test/one"
        assert data["errors"][0]["url"] == "https://a.test/broken"

    def test_batch_limits(self, client):
        empty = client.post(f"{PREFIX}/scrape/batch", json={"urls": []})
        too_many = client.post(f"{PREFIX}/scrape/batch", json={
            "urls": [f"https://a.test/{i}" for i in range(51)],
        })

        assert empty.status_code == 400
        assert too_many.status_code == 400
        assert too_many.json()["error"] == "Maximum 50 URLs allowed per batch"
