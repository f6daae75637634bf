"""
Azure Video Indexer adapter

Token, upload, poll until indexed, delete, normalize summarized insights.
"""
import asyncio
import uuid
from typing import Any, Dict, List, Optional

import httpx

from src.core.evidence import VideoInsights
from src.core.results import ErrorKind, ProviderResult
from src.providers.base import ProviderAdapter, ProviderCallError
from src.utils.logger import get_logger

logger = get_logger(__name__)


def _instances(item: Dict[str, Any], *extra: str) -> List[Dict[str, Any]]:
    keys = ("start", "end") + extra
    return [{k: inst.get(k) for k in keys} for inst in item.get("instances") or []]


def _duration_seconds(value: Any) -> float:
    if isinstance(value, dict):
        value = value.get("seconds", 0)
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class AzureVideoIndexerAdapter(ProviderAdapter):
    """Contract: analyze(video_bytes) -> ProviderResult[VideoInsights]"""

    name = "azure_video_indexer"
    BASE_URL = "https://api.videoindexer.ai"

    def __init__(
        self,
        api_key: Optional[str],
        location: Optional[str],
        account_id: Optional[str],
        poll_attempts: int = 20,
        poll_interval: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__(http_client)
        self.api_key = api_key
        self.location = location
        self.account_id = account_id
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.location and self.account_id)

    @property
    def _account_url(self) -> str:
        return f"{self.BASE_URL}/{self.location}/Accounts/{self.account_id}"

    async def analyze(self, video_bytes: bytes) -> ProviderResult[VideoInsights]:
        if not self.is_configured:
            return self.unavailable()
        try:
            insights = await self._analyze(video_bytes)
        except Exception as e:
            return self.failed(e)
        logger.info(f"{self.name} indexed video: {len(insights.scenes)} scenes, {len(insights.topics)} topics")
        return ProviderResult.success(self.name, insights)

    async def _access_token(self) -> str:
        response = await self.http.get(
            f"{self.BASE_URL}/auth/{self.location}/Accounts/{self.account_id}/AccessToken",
            params={"allowEdit": "true"},
            headers={"Ocp-Apim-Subscription-Key": self.api_key},
        )
        response.raise_for_status()
        return response.text.strip().strip('"')

    async def _analyze(self, video_bytes: bytes) -> VideoInsights:
        token = await self._access_token()

        upload = await self.http.post(
            f"{self._account_url}/Videos",
            params={
                "accessToken": token,
                "name": f"video_{uuid.uuid4().hex[:12]}",
                "privacy": "private",
                "indexingPreset": "Default",
            },
            files={"file": ("video.mp4", video_bytes, "video/mp4")},
        )
        upload.raise_for_status()
        video_id = upload.json()["id"]

        try:
            state = ""
            for _ in range(self.poll_attempts):
                await asyncio.sleep(self.poll_interval)
                poll = await self.http.get(
                    f"{self._account_url}/Videos/{video_id}/Index",
                    params={"accessToken": token},
                )
                poll.raise_for_status()
                data = poll.json()
                state = data.get("state", "")
                if state == "Processed":
                    return self._normalize(data)
                if state == "Failed":
                    raise ProviderCallError(ErrorKind.UNKNOWN, "Video indexing failed")
                logger.debug(f"Indexing in progress, state: {state}")

            raise ProviderCallError(ErrorKind.TIMEOUT, f"Indexing not finished, last state: {state}")
        finally:
            await self._delete(video_id, token)

    async def _delete(self, video_id: str, token: str) -> None:
        try:
            await self.http.delete(f"{self._account_url}/Videos/{video_id}", params={"accessToken": token})
        except httpx.HTTPError as e:
            logger.warning(f"Failed to delete indexed video {video_id}: {e}")

    def _normalize(self, data: Dict[str, Any]) -> VideoInsights:
        summary = data.get("summarizedInsights") or {}
        return VideoInsights(
            provider=self.name,
            duration_sec=_duration_seconds(summary.get("duration")),
            scenes=[{"id": s.get("id"), "instances": _instances(s)} for s in summary.get("scenes") or []],
            emotions=[
                {"type": e.get("type"), "instances": _instances(e, "confidence")}
                for e in summary.get("emotions") or []
            ],
            faces=[
                {
                    "id": f.get("id"),
                    "name": f.get("name") or "Unknown person",
                    "confidence": f.get("confidence"),
                    "instances": _instances(f, "thumbnailId"),
                }
                for f in summary.get("faces") or []
            ],
            topics=[
                {"name": t.get("name"), "confidence": t.get("confidence"), "instances": _instances(t)}
                for t in summary.get("topics") or []
            ],
            labels=[
                {"name": lb.get("name"), "confidence": lb.get("confidence"), "instances": _instances(lb)}
                for lb in summary.get("labels") or []
            ],
        )
