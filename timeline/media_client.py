"""
Immersion Timeline - Media Store Client

Thin adapter over the media REST API. Only used to write accepted region
inferences back onto media items; everything else about the media store is
owned by the Lambda/DynamoDB service.
"""

import logging
from typing import Dict, Any

import requests

from config import MEDIA_API_URL, MEDIA_API_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class MediaStoreClient:
    """Updates media items via PUT /media/<id>"""

    def __init__(self, api_base: str = None, timeout: float = None, session: requests.Session = None):
        self.api_base = (api_base or MEDIA_API_URL).rstrip('/')
        self.timeout = MEDIA_API_TIMEOUT_SECONDS if timeout is None else timeout
        self.session = session or requests.Session()

    def update_media(self, media_id: str, payload: Dict[str, Any]) -> bool:
        """
        Merge payload into a media item.
        Returns True if successful.
        """
        try:
            response = self.session.put(
                f"{self.api_base}/media/{media_id}",
                json=payload,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Media update failed for {media_id}: {e}")
            return False

        if not 200 <= response.status_code < 300:
            logger.error(f"Media update for {media_id} returned {response.status_code}")
            return False
        return True
