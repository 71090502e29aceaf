"""요청 단위 동기 이벤트 버스

NFT 흐름(mint/burn/transfer/lock/unlock)이 끝난 뒤 다른 서비스에 알린다.
버스는 요청마다 새로 만들고 (api/deps.py), 핸들러는 같은 DB 세션 안에서 돈다.

- payload 는 식별자만 담는다 (token_id, equip_item_id 등)
- 핸들러가 다시 emit 할 수 있지만 MAX_DEPTH 단계까지만
- 같은 요청에서 동일 source/type/payload 이벤트는 한 번만 전파
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from toremain.core.logging import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 5


@dataclass
class DomainEvent:
    event_type: str
    data: Dict[str, Any]
    source: str

    depth: int = field(default=0, repr=False)

    @property
    def token_id(self) -> Optional[str]:
        value = self.data.get("token_id")
        return None if value is None else str(value)

    @property
    def chain_key(self) -> str:
        """중복 판별 키. payload 키 순서와 무관."""
        payload = ",".join(f"{k}={self.data[k]}" for k in sorted(self.data))
        return f"{self.source}:{self.event_type}:{payload}"


EventHandler = Callable[[DomainEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._depth = 0
        self._seen: set[str] = set()
        self.published: List[DomainEvent] = []

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)
        logger.debug("Subscribed %s -> %s", event_type, getattr(handler, "__qualname__", handler))

    def handlers_for(self, event_type: str) -> List[EventHandler]:
        return list(self._handlers.get(event_type, ()))

    def emit(self, event: DomainEvent) -> bool:
        """핸들러를 등록 순서대로 호출. 전파되지 않았으면 False.

        핸들러 예외는 로그로 남기고 다음 핸들러로 넘어간다.
        호출한 쪽의 작업(이미 커밋된 mint/burn 등)은 되돌리지 않는다.
        """
        if self._depth >= MAX_DEPTH:
            logger.warning(
                "Event depth limit (%d) reached, dropped %s from %s",
                MAX_DEPTH,
                event.event_type,
                event.source,
            )
            return False

        key = event.chain_key
        if key in self._seen:
            logger.warning("Duplicate event dropped: %s", key)
            return False
        self._seen.add(key)

        event.depth = self._depth
        self.published.append(event)

        handlers = self.handlers_for(event.event_type)
        logger.info(
            "Event %s (source=%s, token=%s, handlers=%d)",
            event.event_type,
            event.source,
            event.token_id,
            len(handlers),
        )

        self._depth += 1
        try:
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "Event handler %s failed on %s",
                        getattr(handler, "__qualname__", handler),
                        event.event_type,
                    )
        finally:
            self._depth -= 1
        return True

    def published_types(self) -> List[str]:
        return [e.event_type for e in self.published]
