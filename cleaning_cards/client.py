"""Client side of the upload: posts a prepared RoomPhoto to the analysis server."""
from __future__ import annotations

import json
from typing import Any, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import NoCardsGenerated, UploadError
from .json_recovery import normalize_followup, normalize_initial
from .models import CleaningCard, FollowupAnalysisResult, InitialAnalysisResult, RoomPhoto, cards_to_dicts
from .utils import log, new_request_id

ANALYSIS_PATH = "/api/analysis/room-photo"
RETRY_BACKOFF_FACTOR = 0.5


def _session(retries: int) -> requests.Session:
    # connect errors only; read errors and error answers are never resent
    retry = Retry(
        total=retries,
        connect=retries,
        read=0,
        redirect=0,
        status=0,
        other=0,
        backoff_factor=RETRY_BACKOFF_FACTOR,
        allowed_methods=frozenset(["POST"]),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s = requests.Session()
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


class RoomPhotoClient:
    """Uploads photos to `<base_url>/api/analysis/room-photo`.

    Connection failures (nothing reached the server) are retried up to
    `retries` times with backoff by the session's urllib3 Retry. Read
    timeouts and error answers are not retried, since the server may already
    have called the model. Every upload carries an X-Request-Id so client
    and server logs line up. Errors are raised as UploadError.
    """

    def __init__(self, base_url: str, timeout: int = 60, retries: int = 1, session: Optional[Any] = None, quiet: bool = True):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self.session = session or _session(retries)
        self.quiet = quiet

    @property
    def url(self) -> str:
        return self.base_url + ANALYSIS_PATH

    def _post(self, photo: RoomPhoto, data: dict) -> dict:
        request_id = new_request_id()
        headers = {"Accept": "application/json", "X-Request-Id": request_id}
        files = {"image": ("room.jpg", photo.jpeg, "image/jpeg")}
        log(
            f"Uploading {photo.width}x{photo.height} {photo.orientation or 'unknown'} photo, {len(photo.jpeg)} bytes",
            self.quiet,
            request_id,
        )
        try:
            resp = self.session.post(self.url, files=files, data=data, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            raise UploadError(None, f"request timed out: {e}") from e
        except requests.RequestException as e:
            raise UploadError(None, f"connection failed: {e}") from e

        if not resp.ok:
            raise UploadError(resp.status_code, _error_text(resp))
        try:
            return resp.json()
        except ValueError as e:
            raise UploadError(resp.status_code, f"invalid response from server: {e}") from e

    def analyze(self, photo: RoomPhoto, locale: Optional[str] = None) -> InitialAnalysisResult:
        data = {}
        locale = locale or photo.locale
        if locale:
            data["locale"] = locale
        result = normalize_initial(self._post(photo, data))
        if not result.cards:
            raise NoCardsGenerated()
        return result

    def analyze_followup(
        self,
        photo: RoomPhoto,
        previous_photo: RoomPhoto,
        previous_cards: List[CleaningCard],
        locale: Optional[str] = None,
    ) -> FollowupAnalysisResult:
        data = {
            "mode": "followup",
            "previousImage": previous_photo.to_base64(),
            "previousCards": json.dumps(cards_to_dicts(previous_cards), ensure_ascii=False),
        }
        locale = locale or photo.locale
        if locale:
            data["locale"] = locale
        return normalize_followup(self._post(photo, data))


def _error_text(resp: Any) -> str:
    text = resp.text or ""
    try:
        body = json.loads(text) if text else None
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return text or f"server error ({resp.status_code})"
