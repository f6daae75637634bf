"""
Face analysis provider adapters

Face++, Azure Face, Google Cloud Vision and AWS Rekognition, each
normalized to a list of FaceObservation with 0-1 bounding boxes and
0-1 emotion scores.
"""
import asyncio
import base64
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image

from src.core.evidence import BoundingBox, FaceObservation, UNKNOWN_GENDER
from src.core.results import ErrorKind, ProviderResult
from src.providers.base import ProviderAdapter, ProviderCallError
from src.utils.logger import get_logger

logger = get_logger(__name__)

FaceList = List[FaceObservation]

GOOGLE_LIKELIHOOD_SCORES = {
    "VERY_LIKELY": 0.9,
    "LIKELY": 0.7,
    "POSSIBLE": 0.5,
    "UNLIKELY": 0.3,
}
GOOGLE_EMOTIONS = {
    "joy": "joyLikelihood",
    "sorrow": "sorrowLikelihood",
    "anger": "angerLikelihood",
    "surprise": "surpriseLikelihood",
}


def image_size(image_bytes: bytes) -> Tuple[int, int]:
    """Pixel (width, height) of an encoded image"""
    with Image.open(BytesIO(image_bytes)) as img:
        return img.size


def _clamp(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def _pixel_box(rect: Dict[str, Any], width: int, height: int) -> BoundingBox:
    return BoundingBox(
        left=_clamp(rect.get("left", 0) / width),
        top=_clamp(rect.get("top", 0) / height),
        width=_clamp(rect.get("width", 0) / width),
        height=_clamp(rect.get("height", 0) / height),
    )


def _gender(value: Optional[str]) -> str:
    if not value:
        return UNKNOWN_GENDER
    value = value.lower()
    return value if value in ("male", "female") else UNKNOWN_GENDER


class FaceAdapter(ProviderAdapter):
    """Common contract: detect_faces(image_bytes, max_count)"""

    async def detect_faces(self, image_bytes: bytes, max_count: int) -> ProviderResult[FaceList]:
        if not self.is_configured:
            return self.unavailable()
        try:
            faces = await self._detect(image_bytes, max_count)
        except Exception as e:
            return self.failed(e)
        logger.info(f"{self.name} detected {len(faces)} faces")
        return ProviderResult.success(self.name, faces[:max_count])

    async def _detect(self, image_bytes: bytes, max_count: int) -> FaceList:
        raise NotImplementedError


class FacePlusPlusAdapter(FaceAdapter):
    """Face++ detect API (multipart form, pixel rectangles, 0-100 scores)"""

    name = "facepp"
    RETURN_ATTRIBUTES = "gender,age,smiling,headpose,facequality,blur,eyestatus,emotion,beauty,mouthstatus,eyegaze"

    def __init__(self, api_key: Optional[str], api_secret: Optional[str], endpoint: str,
                 http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.api_key = api_key
        self.api_secret = api_secret
        self.endpoint = endpoint

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_secret)

    async def _detect(self, image_bytes: bytes, max_count: int) -> FaceList:
        response = await self.http.post(self.endpoint, data={
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "image_base64": base64.b64encode(image_bytes).decode("ascii"),
            "return_attributes": self.RETURN_ATTRIBUTES,
        })
        # Face++ reports concurrency throttling as 403
        if response.status_code == 403 and "CONCURRENCY_LIMIT_EXCEEDED" in response.text:
            raise ProviderCallError(ErrorKind.RATE_LIMITED, "CONCURRENCY_LIMIT_EXCEEDED")
        response.raise_for_status()
        data = response.json()

        width, height = image_size(image_bytes)
        faces = []
        for index, face in enumerate(data["faces"][:max_count]):
            attributes = face.get("attributes") or {}
            age = (attributes.get("age") or {}).get("value")
            emotions = attributes.get("emotion") or {}
            faces.append(FaceObservation(
                person_index=index + 1,
                bounding_box=_pixel_box(face.get("face_rectangle") or {}, width, height),
                estimated_age=(max(0, age - 5), age + 5) if age is not None else None,
                estimated_gender=_gender((attributes.get("gender") or {}).get("value")),
                emotion_scores={k.lower(): float(v) / 100 for k, v in emotions.items()},
                provider_attributes={self.name: {
                    "smiling": (attributes.get("smiling") or {}).get("value"),
                    "beauty": attributes.get("beauty"),
                    "headpose": attributes.get("headpose"),
                    "eyestatus": attributes.get("eyestatus"),
                    "mouthstatus": attributes.get("mouthstatus"),
                }},
            ))
        return faces


class AzureFaceAdapter(FaceAdapter):
    """Azure Face detect API (octet-stream upload, pixel rectangles)"""

    name = "azure_face"
    RETURN_ATTRIBUTES = "headPose,glasses,occlusion,accessories,blur,exposure,noise"

    def __init__(self, api_key: Optional[str], endpoint: Optional[str],
                 http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/") if endpoint else None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.endpoint)

    async def _detect(self, image_bytes: bytes, max_count: int) -> FaceList:
        response = await self.http.post(
            f"{self.endpoint}/face/v1.0/detect",
            params={
                "returnFaceId": "false",
                "returnFaceLandmarks": "false",
                "returnFaceAttributes": self.RETURN_ATTRIBUTES,
            },
            headers={
                "Ocp-Apim-Subscription-Key": self.api_key,
                "Content-Type": "application/octet-stream",
            },
            content=image_bytes,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, list):
            raise ValueError("Azure Face returned a non-list payload")

        width, height = image_size(image_bytes)
        faces = []
        for index, face in enumerate(data[:max_count]):
            attributes = face.get("faceAttributes") or {}
            age = attributes.get("age")
            faces.append(FaceObservation(
                person_index=index + 1,
                bounding_box=_pixel_box(face["faceRectangle"], width, height),
                estimated_age=(max(0, age - 5), age + 5) if age is not None else None,
                estimated_gender=_gender(attributes.get("gender")),
                emotion_scores={k: float(v) for k, v in (attributes.get("emotion") or {}).items()},
                provider_attributes={self.name: {
                    "head_pose": attributes.get("headPose"),
                    "glasses": attributes.get("glasses"),
                    "occlusion": attributes.get("occlusion"),
                    "accessories": attributes.get("accessories"),
                }},
            ))
        return faces


class GoogleVisionAdapter(FaceAdapter):
    """Google Cloud Vision FACE_DETECTION (likelihood enums mapped to scores)"""

    name = "google_vision"
    ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"

    def __init__(self, api_key: Optional[str], http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _detect(self, image_bytes: bytes, max_count: int) -> FaceList:
        response = await self.http.post(
            self.ENDPOINT,
            params={"key": self.api_key},
            json={"requests": [{
                "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                "features": [{"type": "FACE_DETECTION", "maxResults": max_count}],
            }]},
        )
        response.raise_for_status()
        payload = response.json()["responses"][0]
        if "error" in payload:
            raise ValueError(payload["error"].get("message", "Vision API error"))

        width, height = image_size(image_bytes)
        faces = []
        for index, face in enumerate(payload.get("faceAnnotations", [])[:max_count]):
            vertices = (face.get("boundingPoly") or {}).get("vertices") or []
            xs = [v.get("x", 0) for v in vertices] or [0]
            ys = [v.get("y", 0) for v in vertices] or [0]
            faces.append(FaceObservation(
                person_index=index + 1,
                bounding_box=_pixel_box(
                    {"left": min(xs), "top": min(ys), "width": max(xs) - min(xs), "height": max(ys) - min(ys)},
                    width, height,
                ),
                emotion_scores={
                    emotion: GOOGLE_LIKELIHOOD_SCORES.get(face.get(field), 0.1)
                    for emotion, field in GOOGLE_EMOTIONS.items()
                },
                provider_attributes={self.name: {
                    "detection_confidence": face.get("detectionConfidence"),
                    "landmark_count": len(face.get("landmarks") or []),
                    "headwear_likelihood": face.get("headwearLikelihood"),
                }},
            ))
        return faces


class RekognitionAdapter(FaceAdapter):
    """AWS Rekognition DetectFaces via boto3 in a worker thread"""

    name = "aws_rekognition"

    AUTH_CODES = {"AccessDeniedException", "UnrecognizedClientException", "InvalidSignatureException",
                  "ExpiredTokenException"}
    THROTTLE_CODES = {"ThrottlingException", "ProvisionedThroughputExceededException"}
    MALFORMED_CODES = {"InvalidImageFormatException", "ImageTooLargeException", "InvalidParameterException"}

    def __init__(self, access_key_id: Optional[str], secret_access_key: Optional[str], region: str,
                 client: Any = None):
        super().__init__(None)
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self._client is not None or (self.access_key_id and self.secret_access_key))

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "rekognition",
                region_name=self.region,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
        return self._client

    async def detect_faces(self, image_bytes: bytes, max_count: int) -> ProviderResult[FaceList]:
        if not self.is_configured:
            return self.unavailable()
        try:
            response = await asyncio.to_thread(
                self.client.detect_faces, Image={"Bytes": image_bytes}, Attributes=["ALL"]
            )
            faces = [self._normalize(i, face) for i, face in enumerate(response["FaceDetails"][:max_count])]
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in self.AUTH_CODES:
                kind = ErrorKind.AUTH_FAILED
            elif code in self.THROTTLE_CODES:
                kind = ErrorKind.RATE_LIMITED
            elif code in self.MALFORMED_CODES:
                kind = ErrorKind.MALFORMED
            else:
                kind = ErrorKind.UNKNOWN
            logger.warning(f"{self.name} call failed ({kind.value}): {code}")
            return ProviderResult.failure(self.name, kind, code)
        except BotoCoreError as e:
            logger.warning(f"{self.name} call failed: {e}")
            return ProviderResult.failure(self.name, ErrorKind.UNKNOWN, str(e))
        except Exception as e:
            return self.failed(e)

        logger.info(f"{self.name} detected {len(faces)} faces")
        return ProviderResult.success(self.name, faces)

    def _normalize(self, index: int, face: Dict[str, Any]) -> FaceObservation:
        box = face.get("BoundingBox") or {}
        age_range = face.get("AgeRange")
        return FaceObservation(
            person_index=index + 1,
            bounding_box=BoundingBox(
                left=_clamp(box.get("Left", 0)),
                top=_clamp(box.get("Top", 0)),
                width=_clamp(box.get("Width", 0)),
                height=_clamp(box.get("Height", 0)),
            ),
            estimated_age=(age_range["Low"], age_range["High"]) if age_range else None,
            estimated_gender=_gender((face.get("Gender") or {}).get("Value")),
            emotion_scores={
                e["Type"].lower(): float(e["Confidence"]) / 100
                for e in face.get("Emotions", []) if e.get("Type")
            },
            provider_attributes={self.name: {
                "smile": (face.get("Smile") or {}).get("Value"),
                "eyeglasses": (face.get("Eyeglasses") or {}).get("Value"),
                "eyes_open": (face.get("EyesOpen") or {}).get("Value"),
                "pose": face.get("Pose"),
                "quality": face.get("Quality"),
            }},
        )
