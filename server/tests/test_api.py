"""
HTTP tests for the FastAPI app.

The service factory dependency is overridden so requests run the real
pipeline against a stub model.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from scalpsim import create_app
from scalpsim.api.endpoints._helpers import get_service_factory
from scalpsim.core.errors import ConfigurationError, GenerationFailure
from scalpsim.services.raster import get_raster_backend
from scalpsim.services.simulation_service import SimulationService

from conftest import StubModel


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def make_client(app, reference_root):
    """Build a TestClient whose requests use the given stub model."""
    def factory(model: StubModel) -> TestClient:
        def service_factory(api_key):
            return SimulationService(
                model,
                reference_root=reference_root,
                backend=get_raster_backend("array"),
            )

        app.dependency_overrides[get_service_factory] = lambda: service_factory
        return TestClient(app)

    yield factory
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, app):
        response = TestClient(app).get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Server is running"

    def test_unknown_route(self, app):
        response = TestClient(app).get("/api/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "API route not found: /api/nope"}


class TestValidateEndpoint:
    def test_accepted(self, make_client, photo_uri):
        response = make_client(StubModel(answer="TRUE")).post(
            "/api/v1/validate", json={"patientImage": photo_uri}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_rejected(self, make_client, photo_uri):
        response = make_client(StubModel(answer="FALSE")).post(
            "/api/v1/validate", json={"patientImage": photo_uri}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "clear photo of your scalp" in body["error"]

    def test_missing_patient_image(self, make_client):
        response = make_client(StubModel()).post("/api/v1/validate", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "patientImage" in body["error"]

    def test_bad_image(self, make_client):
        response = make_client(StubModel()).post(
            "/api/v1/validate", json={"patientImage": "data:image/png;base64,abc"}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestSimulateEndpoint:
    def test_success(self, make_client, photo_uri, mask_uri):
        model = StubModel()

        response = make_client(model).post(
            "/api/v1/simulate",
            json={"patientImage": photo_uri, "mask": mask_uri, "density": "high"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["resultImage"].startswith("data:image/png;base64,")
        assert "error" not in body
        assert "HIGH DENSITY" in model.image_requests[0][-1].text

    def test_density_defaults_to_medium(self, make_client, photo_uri, mask_uri):
        model = StubModel()

        make_client(model).post("/api/v1/simulate", json={"patientImage": photo_uri, "mask": mask_uri})

        assert "MEDIUM DENSITY" in model.image_requests[0][-1].text

    def test_unknown_density(self, make_client, photo_uri):
        response = make_client(StubModel()).post(
            "/api/v1/simulate", json={"patientImage": photo_uri, "density": "EXTREME"}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_rejected_photo(self, make_client, photo_uri, mask_uri):
        model = StubModel(answer="FALSE")

        response = make_client(model).post(
            "/api/v1/simulate", json={"patientImage": photo_uri, "mask": mask_uri}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert model.calls == ["text"]

    def test_generation_failure(self, make_client, failing_model, photo_uri, mask_uri):
        response = make_client(failing_model).post(
            "/api/v1/simulate", json={"patientImage": photo_uri, "mask": mask_uri}
        )

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "AI failed to generate results"}

    def test_missing_key(self, make_client, photo_uri, mask_uri):
        model = StubModel(text_error=ConfigurationError("API Key not found"))

        response = make_client(model).post(
            "/api/v1/simulate", json={"patientImage": photo_uri, "mask": mask_uri}
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "API Key not found"}

    def test_unexpected_error_surfaces_message(self, make_client, photo_uri, mask_uri):
        model = StubModel(image_error=RuntimeError("disk on fire"))

        response = make_client(model).post(
            "/api/v1/simulate", json={"patientImage": photo_uri, "mask": mask_uri}
        )

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "disk on fire"}


class TestServiceFactory:
    def test_factory_errors_are_mapped(self, app, photo_uri):
        def service_factory(api_key):
            raise ConfigurationError("API Key not found")

        app.dependency_overrides[get_service_factory] = lambda: service_factory
        try:
            response = TestClient(app).post("/api/v1/validate", json={"patientImage": photo_uri})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401

    def test_api_key_forwarded_to_factory(self, app, photo_uri):
        seen = []

        def service_factory(api_key):
            seen.append(api_key)
            raise GenerationFailure("stop here")

        app.dependency_overrides[get_service_factory] = lambda: service_factory
        try:
            TestClient(app).post(
                "/api/v1/validate", json={"patientImage": photo_uri, "apiKey": "user-key"}
            )
        finally:
            app.dependency_overrides.clear()

        assert seen == ["user-key"]
