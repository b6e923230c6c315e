"""
Post-commit side effects of funding/unlock flows: cache invalidation and
realtime events (Redis pub/sub, fanned out to SSE clients by the realtime service).
Never called inside a transaction; failures are logged and swallowed so a
committed unlock is never reported as failed.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any

import redis

from novelhub.core.config import settings
from novelhub.services.unlock.models import UnlockResult

logger = logging.getLogger(__name__)


class EventPublisher:
    def __init__(self, client: redis.Redis | None = None) -> None:
        self.client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self.channel = settings.events_channel
        self.prefix = settings.cache_key_prefix

    def _key(self, *parts: str) -> str:
        return ":".join((self.prefix, *parts))

    def publish(self, event: str, data: dict[str, Any]) -> None:
        message = {
            "event": event,
            "data": data,
            "ts": datetime.now(timezone.utc).isoformat(),
        }
        self.client.publish(self.channel, json.dumps(message, ensure_ascii=False))

    def invalidate_novel(self, novel_id: str, module_ids: list[str] | None = None) -> None:
        keys = [self._key("novel", novel_id), self._key("novel", novel_id, "modules")]
        keys += [self._key("module", module_id) for module_id in module_ids or []]
        self.client.delete(*keys)
        # listing caches ("latest updates", hot lists) are keyed by page, drop them all
        for key in self.client.scan_iter(match=self._key("novels", "*")):
            self.client.delete(key)

    def budget_updated(self, novel_id: str, budget: int, balance: int) -> None:
        try:
            self.publish("novel_budget_updated", {"novelId": novel_id, "newBudget": budget, "newBalance": balance})
        except redis.RedisError:
            logger.exception("event_publish_failed", extra={"novel_id": novel_id})

    def unlock_completed(self, result: UnlockResult) -> None:
        """One event per unlocked module/chapter and per switched module, then an aggregate one."""
        if not result.unlocked_content and not result.switched_modules:
            return
        try:
            module_ids = sorted(
                {item.module_id for item in result.unlocked_content}
                | {module.id for module in result.switched_modules}
            )
            self.invalidate_novel(result.novel_id, module_ids)

            for item in result.unlocked_content:
                if item.kind == "module":
                    self.publish(
                        "module_unlocked",
                        {"novelId": item.novel_id, "moduleId": item.id, "moduleTitle": item.title},
                    )
                else:
                    self.publish(
                        "chapter_unlocked",
                        {
                            "novelId": item.novel_id,
                            "moduleId": item.module_id,
                            "chapterId": item.id,
                            "chapterTitle": item.title,
                        },
                    )
            for module in result.switched_modules:
                self.publish(
                    "module_switched_to_published",
                    {"novelId": module.novel_id, "moduleId": module.id, "moduleTitle": module.title},
                )
            self.publish(
                "content_unlocked",
                {
                    "novelId": result.novel_id,
                    "unlocked": len(result.unlocked_content),
                    "switched": len(result.switched_modules),
                    "newBudget": result.final_budget,
                },
            )
        except redis.RedisError:
            logger.exception("event_publish_failed", extra={"novel_id": result.novel_id})
