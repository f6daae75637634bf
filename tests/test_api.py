"""Route tests with the orchestrator and stores swapped for in-memory stubs."""

import base64

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_chat_service, get_orchestrator, get_provider_registry, get_store
from src.api.main import app
from src.providers.registry import ProviderRegistry
from src.services.chat_service import ChatService
from src.services.orchestrator import AnalysisOrchestrator, OrchestratorConfig

from tests.conftest import FakeTranscoder, StubFaceAdapter, StubLLMAdapter, face, jpeg_bytes


@pytest.fixture
def wire(store):
    """Install overrides for a registry; returns a TestClient"""
    def install(llm_configured: bool = True) -> TestClient:
        registry = ProviderRegistry(
            face=[StubFaceAdapter("facepp", [face(1, "female")])],
            llm=[StubLLMAdapter("openai", configured=llm_configured)],
        )
        orchestrator = AnalysisOrchestrator(
            registry, FakeTranscoder(), store,
            OrchestratorConfig(face_order=["facepp"], llm_order=["openai"], request_deadline=30.0),
        )
        chat = ChatService(registry, store, timeout=5.0)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        app.dependency_overrides[get_chat_service] = lambda: chat
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_provider_registry] = lambda: registry
        return TestClient(app)

    yield install
    app.dependency_overrides.clear()


def image_data_url() -> str:
    return "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes()).decode()


class TestAnalyze:
    def test_image_round_trip(self, wire):
        client = wire()
        data_url = image_data_url()

        response = client.post("/api/analyze", json={
            "mediaData": data_url,
            "mediaType": "image",
            "sessionId": "s1",
            "maxPeople": 2,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == 1
        assert body["sessionId"] == "s1"
        assert body["mediaUrl"] == data_url
        assert body["personalityInsights"]["people_count"] == 1
        assert body["faceAnalysis"][0]["person_label"] == "Person 1 (Female)"
        assert body["downloaded"] is False
        assert [m["role"] for m in body["messages"]] == ["assistant"]

    def test_text(self, wire):
        response = wire().post("/api/analyze/text", json={
            "content": "I spent the weekend rebuilding my bike.",
            "sessionId": "s2",
            "selectedModel": "openai",
            "analysisDepth": "short",
        })

        assert response.status_code == 200
        assert response.json()["mediaType"] == "text"

    def test_document(self, wire):
        response = wire().post("/api/analyze/document", json={
            "fileData": "data:text/plain;base64," + base64.b64encode(b"About me: I like chess.").decode(),
            "fileName": "about.txt",
            "sessionId": "s3",
        })

        assert response.status_code == 200
        assert response.json()["title"] == "about.txt"

    def test_empty_document(self, wire):
        response = wire().post("/api/analyze/document", json={
            "fileData": "data:text/plain;base64," + base64.b64encode(b"   ").decode(),
            "fileName": "blank.txt",
            "sessionId": "s3",
        })

        assert response.status_code == 400
        assert response.json()["error_type"] == "InvalidDocumentError"

    def test_no_language_model_is_503(self, wire):
        response = wire(llm_configured=False).post("/api/analyze", json={
            "mediaData": image_data_url(), "mediaType": "image", "sessionId": "s1",
        })

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["error_type"] == "ProvidersUnavailableError"
        assert body["details"] == {"capability": "llm"}

    def test_undecodable_media_is_400(self, wire):
        response = wire().post("/api/analyze", json={
            "mediaData": "data:image/png;base64,", "mediaType": "image", "sessionId": "s1",
        })
        assert response.status_code == 400

    @pytest.mark.parametrize("body", [
        {"content": "   ", "sessionId": "s1"},
        {"content": "hello", "sessionId": "s1", "selectedModel": "gemini"},
        {"content": "hello", "sessionId": "s1", "analysisDepth": "epic"},
        {"content": "hello"},
    ])
    def test_invalid_text_requests(self, wire, body):
        response = wire().post("/api/analyze/text", json=body)

        assert response.status_code == 422
        assert response.json()["error_type"] == "ValidationError"

    def test_max_people_bounds(self, wire):
        response = wire().post("/api/analyze", json={
            "mediaData": image_data_url(), "mediaType": "image", "sessionId": "s1", "maxPeople": 0,
        })
        assert response.status_code == 422


class TestChat:
    def test_chat(self, wire):
        response = wire().post("/api/chat", json={"content": "Hello", "sessionId": "s1"})

        assert response.status_code == 200
        messages = response.json()["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[0]["sessionId"] == "s1"

    def test_chat_without_model(self, wire):
        response = wire(llm_configured=False).post("/api/chat", json={"content": "Hello", "sessionId": "s1"})

        assert response.status_code == 503
        assert response.json()["details"]["user_message"]["content"] == "Hello"


class TestSessions:
    def seed(self, client):
        return client.post("/api/analyze/text", json={"content": "Writing sample.", "sessionId": "s1"}).json()

    def test_messages_and_sessions(self, wire):
        client = wire()
        self.seed(client)

        messages = client.get("/api/messages", params={"sessionId": "s1"})
        sessions = client.get("/api/sessions")

        assert messages.status_code == 200
        assert len(messages.json()) == 1
        assert sessions.json()[0]["sessionId"] == "s1"

    def test_rename_and_clear(self, wire):
        client = wire()
        self.seed(client)

        renamed = client.patch("/api/session/name", json={"sessionId": "s1", "name": "My essay"})
        assert renamed.json() == {"success": True, "sessionId": "s1", "name": "My essay"}

        cleared = client.post("/api/session/clear", json={"sessionId": "s1"})
        assert cleared.status_code == 200
        assert client.get("/api/sessions").json() == []
        assert client.get("/api/analysis/1").status_code == 404

    def test_get_analysis(self, wire):
        client = wire()
        created = self.seed(client)

        response = client.get(f"/api/analysis/{created['id']}")

        assert response.status_code == 200
        assert response.json()["personalityInsights"] == created["personalityInsights"]

    def test_invalid_analysis_id(self, wire):
        response = wire().get("/api/analysis/abc")

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid analysis ID"

    def test_download_marks_downloaded(self, wire):
        client = wire()
        created = self.seed(client)

        response = client.get(f"/api/download/{created['id']}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert f'filename="analysis_{created["id"]}.txt"' in response.headers["content-disposition"]
        assert "Subject 1" in response.text
        assert client.get(f"/api/analysis/{created['id']}").json()["downloaded"] is True

    def test_download_missing(self, wire):
        assert wire().get("/api/download/42").status_code == 404


class TestHealth:
    def test_health(self, wire):
        response = wire().get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "x-process-time" in response.headers

    def test_status_reports_configured_flags(self, wire):
        body = wire().get("/api/status").json()

        assert body["status"] == "ok"
        assert body["llm_available"] is True
        assert body["providers"]["face"] == {"facepp": True}

    def test_status_degraded_without_model(self, wire):
        body = wire(llm_configured=False).get("/api/status").json()

        assert body["status"] == "degraded"
        assert body["providers"]["llm"] == {"openai": False}
