import unittest
from unittest import mock

from fastapi.testclient import TestClient

from api.dependencies import (
    get_analysis_service_dep,
    get_analysis_store_dep,
    get_chat_service_dep,
    get_comparison_service_dep,
    get_summary_service_dep,
    get_token_verifier_dep,
)
from config import Settings
from core.data_uri import DecodedDocument, encode_data_uri
from core.exceptions import UpstreamError
from fakes import NOT_POLICY_PAYLOAD, PDF_BYTES, POLICY_PAYLOAD, FakeModelClient
from main import app, settings as app_settings
from services import auth_service
from services.analysis_service import PolicyAnalysisService
from services.analysis_store import InMemoryAnalysisStore
from services.auth_service import FirebaseTokenVerifier
from services.chat_service import PolicyChatService
from services.comparison_service import PolicyComparisonService
from services.summary_service import DocumentSummaryService


def _verify(token):
    if token != "good-token":
        raise ValueError("Invalid token")
    return {"uid": "user-123", "email": "ada@example.com", "name": "Ada"}


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.fake = FakeModelClient()
        self.store = InMemoryAnalysisStore()
        app.dependency_overrides[get_analysis_service_dep] = lambda: PolicyAnalysisService(self.fake)
        app.dependency_overrides[get_chat_service_dep] = lambda: PolicyChatService(self.fake)
        app.dependency_overrides[get_comparison_service_dep] = lambda: PolicyComparisonService(self.fake)
        app.dependency_overrides[get_summary_service_dep] = lambda: DocumentSummaryService(self.fake)
        app.dependency_overrides[get_analysis_store_dep] = lambda: self.store
        app.dependency_overrides[get_token_verifier_dep] = lambda: FirebaseTokenVerifier(verify=_verify)
        self.client = TestClient(app)
        self.auth = {"Authorization": "Bearer good-token"}

    def tearDown(self):
        app.dependency_overrides.clear()


class TestAnalyzeEndpoints(ApiTestCase):
    def test_analyze_text(self):
        self.fake.responses = [POLICY_PAYLOAD]
        response = self.client.post("/api/analyze", json={"documentText": "SecureLife policy wording"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["isPolicy"])
        self.assertTrue(body["final_verdict"].startswith("Neutral Policy:"))

    def test_missing_input(self):
        response = self.client.post("/api/analyze", json={})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "missing_input")
        self.assertEqual(self.fake.calls, [])

    def test_not_a_policy_returns_placeholder_analysis(self):
        self.fake.responses = [NOT_POLICY_PAYLOAD]
        response = self.client.post(
            "/api/analyze", json={"documentText": "This is a 10-page lease agreement..."}
        )

        self.assertEqual(response.status_code, 422)
        body = response.json()
        self.assertEqual(body["error"], "not_a_policy")
        self.assertFalse(body["analysis"]["isPolicy"])

    def test_upstream_failure(self):
        self.fake.error = UpstreamError("The AI service failed to respond.", detail="503 UNAVAILABLE")
        response = self.client.post("/api/analyze", json={"documentText": "policy"})

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["error"], "upstream_error")

    def test_upload_rejects_png(self):
        response = self.client.post(
            "/api/analyze/upload",
            files={"file": ("scan.png", b"\x89PNG\r\n", "image/png")},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_file_type")
        self.assertEqual(self.fake.calls, [])

    def test_upload_rejects_empty_pdf(self):
        response = self.client.post(
            "/api/analyze/upload",
            files={"file": ("policy.pdf", b"", "application/pdf")},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "file_validation_error")

    def test_upload_pdf(self):
        self.fake.responses = [POLICY_PAYLOAD]
        response = self.client.post(
            "/api/analyze/upload",
            files={"file": ("policy.pdf", PDF_BYTES, "application/pdf")},
        )

        self.assertEqual(response.status_code, 200)
        media = [p for p in self.fake.calls[0]["parts"] if isinstance(p, DecodedDocument)]
        self.assertEqual(media[0].data, PDF_BYTES)

    def test_recommend(self):
        self.fake.responses = [{"recommendation": "Worth keeping until your mortgage is paid."}]
        response = self.client.post(
            "/api/recommend",
            json={
                "analysis": POLICY_PAYLOAD,
                "userContext": {"age": 41, "annualSalary": 120000, "investmentGoal": "family protection"},
            },
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["recommendation"], "Worth keeping until your mortgage is paid.")
        self.assertEqual(body["overview"], POLICY_PAYLOAD["overview"])


class TestOtherFlows(ApiTestCase):
    def test_chat(self):
        self.fake.responses = [{"response": "There is no deductible."}]
        response = self.client.post(
            "/api/chat",
            json={
                "analysis": POLICY_PAYLOAD,
                "chatHistory": [
                    {"role": "bot", "content": "Hi"},
                    {"role": "user", "content": "What is the deductible?"},
                ],
            },
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"role": "bot", "content": "There is no deductible."})

    def test_chat_rejects_unknown_role(self):
        response = self.client.post(
            "/api/chat",
            json={"analysis": POLICY_PAYLOAD, "chatHistory": [{"role": "system", "content": "x"}]},
        )
        self.assertEqual(response.status_code, 422)

    def test_compare(self):
        self.fake.responses = [{"comparisonSummary": "Policy 1 covers flood damage."}]
        uri = encode_data_uri(PDF_BYTES, "application/pdf")
        response = self.client.post("/api/compare", json={"policy1DataUri": uri, "policy2DataUri": uri})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["comparisonSummary"], "Policy 1 covers flood damage.")

    def test_compare_malformed_uri(self):
        response = self.client.post(
            "/api/compare", json={"policy1DataUri": "oops", "policy2DataUri": "oops"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_data_uri")

    def test_summaries(self):
        self.fake.text_responses = ["Shares data with partners.", "Auto-renews yearly."]

        privacy = self.client.post("/api/summarize/privacy-policy", json={"url": "https://example.com/privacy"})
        terms = self.client.post("/api/summarize/terms", json={"termsAndConditionsUrl": "https://example.com/tos"})

        self.assertEqual(privacy.json(), {"summary": "Shares data with partners."})
        self.assertEqual(terms.json(), {"summary": "Auto-renews yearly."})

    def test_summary_rejects_invalid_url(self):
        response = self.client.post("/api/summarize/privacy-policy", json={"url": "not a url"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.fake.calls, [])

    def test_simplify(self):
        self.fake.responses = [{"simplifiedExplanation": "You give up the right to sue in court."}]
        response = self.client.post("/api/simplify", json={"documentText": "Binding arbitration applies."})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["simplifiedExplanation"], "You give up the right to sue in court.")


class TestSavedAnalyses(ApiTestCase):
    def test_requires_bearer_token(self):
        self.assertEqual(self.client.get("/api/analyses").status_code, 401)
        bad = self.client.get("/api/analyses", headers={"Authorization": "Bearer forged"})
        self.assertEqual(bad.status_code, 401)
        self.assertEqual(bad.json()["error"], "unauthenticated")

    def test_me(self):
        response = self.client.get("/api/me", headers=self.auth)
        self.assertEqual(response.json()["uid"], "user-123")
        self.assertEqual(response.json()["displayName"], "Ada")

    def test_save_list_delete(self):
        created = self.client.post("/api/analyses", json=POLICY_PAYLOAD, headers=self.auth)
        self.assertEqual(created.status_code, 201)
        analysis_id = created.json()["id"]
        self.assertIn("savedAt", created.json())

        listed = self.client.get("/api/analyses", headers=self.auth).json()
        self.assertEqual([a["id"] for a in listed], [analysis_id])

        deleted = self.client.delete(f"/api/analyses/{analysis_id}", headers=self.auth)
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.client.get("/api/analyses", headers=self.auth).json(), [])

        again = self.client.delete(f"/api/analyses/{analysis_id}", headers=self.auth)
        self.assertEqual(again.status_code, 404)


@unittest.skipIf(app_settings.firebase_enabled, "Firebase is configured in this environment")
class TestMemoryModeAuth(unittest.TestCase):
    """Saved analyses over HTTP with no Firebase project and no dependency overrides."""

    def _memory_mode(self, **overrides):
        local = Settings(_env_file=None, firebase_project_id=None, **overrides)
        return (
            mock.patch.object(auth_service, "_verifier", None),
            mock.patch.object(auth_service, "get_settings", return_value=local),
        )

    def test_missing_firebase_is_401_naming_config(self):
        verifier_patch, settings_patch = self._memory_mode()
        with verifier_patch, settings_patch, TestClient(app) as client:
            response = client.get("/api/analyses", headers={"Authorization": "Bearer alice"})

        self.assertEqual(response.status_code, 401)
        self.assertIn("FIREBASE_PROJECT_ID", response.json()["detail"])

    def test_dev_auth_reaches_memory_store(self):
        verifier_patch, settings_patch = self._memory_mode(dev_auth=True)
        with verifier_patch, settings_patch, TestClient(app) as client:
            self.assertEqual(client.get("/health").json()["store_backend"], "memory")
            created = client.post("/api/analyses", json=POLICY_PAYLOAD, headers={"Authorization": "Bearer alice"})
            mine = client.get("/api/analyses", headers={"Authorization": "Bearer alice"}).json()
            theirs = client.get("/api/analyses", headers={"Authorization": "Bearer bob"}).json()

        self.assertEqual(created.status_code, 201)
        self.assertEqual([a["id"] for a in mine], [created.json()["id"]])
        self.assertEqual(theirs, [])


class TestHealth(unittest.TestCase):
    def test_health_reports_store_backend(self):
        with TestClient(app) as client:
            body = client.get("/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertIn(body["store_backend"], ("memory", "firestore"))


if __name__ == "__main__":
    unittest.main()
