import logging
from dataclasses import dataclass, field

from cachetools import TTLCache

import config
from errors import NotFound

logger = logging.getLogger(__name__)


@dataclass
class ArtifactBundle:
    source_text: str
    final_artifact: str
    metadata: dict = field(default_factory=dict)


class ResultCache:
    """
    Last computed ArtifactBundle per video id, kept so a later export request
    does not rerun the pipeline. Writers for the same id race; the last one wins.
    """

    def __init__(
        self,
        maxsize: int = config.RESULT_CACHE_MAX_SIZE,
        ttl: float = config.RESULT_CACHE_TTL_SECONDS,
    ):
        self._entries = TTLCache(maxsize=maxsize, ttl=ttl)

    def put(self, video_id: str, bundle: ArtifactBundle) -> None:
        self._entries[video_id] = bundle
        logger.info(f"Cached artifact bundle for {video_id} ({len(bundle.source_text)} chars)")

    def get(self, video_id: str) -> ArtifactBundle:
        bundle = self._entries.get(video_id)
        if bundle is None:
            raise NotFound(f"No cached text for video: {video_id}")
        return bundle

    def __contains__(self, video_id: str) -> bool:
        return video_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
