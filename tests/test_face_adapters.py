"""Tests for face provider adapters against stubbed HTTP backends."""

from unittest.mock import MagicMock

import httpx
import pytest
from botocore.exceptions import ClientError

from src.core.results import ErrorKind
from src.providers.face import (
    AzureFaceAdapter,
    FacePlusPlusAdapter,
    GoogleVisionAdapter,
    RekognitionAdapter,
)

from tests.conftest import jpeg_bytes

FACEPP_PAYLOAD = {
    "faces": [
        {
            "face_rectangle": {"left": 20, "top": 10, "width": 50, "height": 40},
            "attributes": {
                "gender": {"value": "Male"},
                "age": {"value": 30},
                "emotion": {"happiness": 80.0, "neutral": 20.0},
                "smiling": {"value": 90.0},
            },
        }
    ]
}


class Backend:
    """Deterministic stub backend counting requests"""

    def __init__(self, status=200, payload=None, text=None):
        self.status = status
        self.payload = payload
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        return httpx.Response(self.status, json=self.payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def image():
    return jpeg_bytes(200, 100)


class TestNoCallWithoutCredentials:
    @pytest.mark.parametrize("build", [
        lambda c: FacePlusPlusAdapter(None, None, "https://facepp.test/detect", http_client=c),
        lambda c: FacePlusPlusAdapter("key", None, "https://facepp.test/detect", http_client=c),
        lambda c: AzureFaceAdapter("key", None, http_client=c),
        lambda c: GoogleVisionAdapter(None, http_client=c),
    ])
    async def test_unconfigured_adapter_issues_no_request(self, build, image):
        backend = Backend(payload=FACEPP_PAYLOAD)
        adapter = build(backend.client())

        result = await adapter.detect_faces(image, 5)

        assert not result.ok
        assert result.error == ErrorKind.UNAVAILABLE
        assert len(backend.requests) == 0

    async def test_rekognition_without_credentials_never_builds_a_client(self, image):
        adapter = RekognitionAdapter(None, None, "us-east-1")
        result = await adapter.detect_faces(image, 5)

        assert result.error == ErrorKind.UNAVAILABLE
        assert adapter._client is None


class TestFacePlusPlus:
    def adapter(self, backend):
        return FacePlusPlusAdapter("key", "secret", "https://facepp.test/detect", http_client=backend.client())

    async def test_normalizes_pixels_and_percentages(self, image):
        result = await self.adapter(Backend(payload=FACEPP_PAYLOAD)).detect_faces(image, 5)

        assert result.ok
        [observation] = result.value
        assert observation.person_index == 1
        assert observation.bounding_box.left == pytest.approx(0.1)
        assert observation.bounding_box.top == pytest.approx(0.1)
        assert observation.bounding_box.width == pytest.approx(0.25)
        assert observation.bounding_box.height == pytest.approx(0.4)
        assert observation.estimated_age == (25, 35)
        assert observation.estimated_gender == "male"
        assert observation.emotion_scores == {"happiness": pytest.approx(0.8), "neutral": pytest.approx(0.2)}
        assert observation.provider_attributes["facepp"]["smiling"] == 90.0

    async def test_same_input_same_output(self, image):
        adapter = self.adapter(Backend(payload=FACEPP_PAYLOAD))

        first = await adapter.detect_faces(image, 5)
        second = await adapter.detect_faces(image, 5)

        assert first == second

    async def test_concurrency_limit_is_rate_limited(self, image):
        backend = Backend(status=403, text='{"error_message": "CONCURRENCY_LIMIT_EXCEEDED"}')
        result = await self.adapter(backend).detect_faces(image, 5)
        assert result.error == ErrorKind.RATE_LIMITED

    async def test_bad_credentials(self, image):
        result = await self.adapter(Backend(status=401, payload={"error_message": "AUTHENTICATION_ERROR"})).detect_faces(image, 5)
        assert result.error == ErrorKind.AUTH_FAILED

    async def test_unexpected_payload_is_malformed(self, image):
        result = await self.adapter(Backend(payload={"unexpected": True})).detect_faces(image, 5)
        assert result.error == ErrorKind.MALFORMED

    async def test_caps_face_count(self, image):
        payload = {"faces": FACEPP_PAYLOAD["faces"] * 4}
        result = await self.adapter(Backend(payload=payload)).detect_faces(image, 2)
        assert len(result.value) == 2


class TestAzureFace:
    async def test_normalizes_rectangle(self, image):
        payload = [{
            "faceRectangle": {"left": 100, "top": 50, "width": 20, "height": 25},
            "faceAttributes": {"headPose": {"yaw": 1.0}},
        }]
        backend = Backend(payload=payload)
        adapter = AzureFaceAdapter("key", "https://azure.test/", http_client=backend.client())

        result = await adapter.detect_faces(image, 5)

        assert result.ok
        assert result.value[0].bounding_box.left == pytest.approx(0.5)
        assert result.value[0].bounding_box.height == pytest.approx(0.25)
        assert backend.requests[0].url.path == "/face/v1.0/detect"
        assert backend.requests[0].headers["Ocp-Apim-Subscription-Key"] == "key"

    async def test_non_list_payload_is_malformed(self, image):
        adapter = AzureFaceAdapter("key", "https://azure.test", http_client=Backend(payload={"error": {}}).client())
        assert (await adapter.detect_faces(image, 5)).error == ErrorKind.MALFORMED


class TestGoogleVision:
    async def test_likelihoods_become_scores(self, image):
        payload = {"responses": [{"faceAnnotations": [{
            "boundingPoly": {"vertices": [{"x": 20, "y": 10}, {"x": 60, "y": 10}, {"x": 60, "y": 60}, {"x": 20, "y": 60}]},
            "joyLikelihood": "VERY_LIKELY",
            "sorrowLikelihood": "UNLIKELY",
            "angerLikelihood": "VERY_UNLIKELY",
            "detectionConfidence": 0.97,
        }]}]}
        adapter = GoogleVisionAdapter("key", http_client=Backend(payload=payload).client())

        result = await adapter.detect_faces(image, 5)

        observation = result.value[0]
        assert observation.emotion_scores == {"joy": 0.9, "sorrow": 0.3, "anger": 0.1, "surprise": 0.1}
        assert observation.top_emotion == "joy"
        assert observation.bounding_box.width == pytest.approx(0.2)
        assert observation.bounding_box.height == pytest.approx(0.5)

    async def test_error_in_response_body(self, image):
        payload = {"responses": [{"error": {"message": "Bad image data"}}]}
        adapter = GoogleVisionAdapter("key", http_client=Backend(payload=payload).client())
        assert (await adapter.detect_faces(image, 5)).error == ErrorKind.MALFORMED


class TestRekognition:
    async def test_normalizes_face_details(self, image):
        client = MagicMock()
        client.detect_faces.return_value = {"FaceDetails": [{
            "BoundingBox": {"Left": 0.1, "Top": 0.2, "Width": 0.3, "Height": 0.4},
            "AgeRange": {"Low": 22, "High": 30},
            "Gender": {"Value": "Female"},
            "Emotions": [{"Type": "CALM", "Confidence": 75.0}, {"Type": "HAPPY", "Confidence": 25.0}],
        }]}
        adapter = RekognitionAdapter(None, None, "us-east-1", client=client)

        result = await adapter.detect_faces(image, 5)

        observation = result.value[0]
        assert observation.estimated_gender == "female"
        assert observation.estimated_age == (22, 30)
        assert observation.emotion_scores == {"calm": 0.75, "happy": 0.25}
        client.detect_faces.assert_called_once_with(Image={"Bytes": image}, Attributes=["ALL"])

    @pytest.mark.parametrize("code, kind", [
        ("ThrottlingException", ErrorKind.RATE_LIMITED),
        ("AccessDeniedException", ErrorKind.AUTH_FAILED),
        ("InvalidImageFormatException", ErrorKind.MALFORMED),
        ("InternalServerError", ErrorKind.UNKNOWN),
    ])
    async def test_client_errors_are_classified(self, image, code, kind):
        client = MagicMock()
        client.detect_faces.side_effect = ClientError({"Error": {"Code": code, "Message": "x"}}, "DetectFaces")
        adapter = RekognitionAdapter(None, None, "us-east-1", client=client)

        assert (await adapter.detect_faces(image, 5)).error == kind
