from typing import Dict, Iterable, Iterator, List, Optional

from statusboard.core.config import EndpointConfig


class EndpointRegistry:
    """Immutable, ordered set of monitored endpoints keyed by ``EndpointConfig.key``."""

    def __init__(self, endpoints: Iterable[EndpointConfig] = ()):
        self._endpoints = tuple(endpoints)
        self._by_key: Dict[str, EndpointConfig] = {}
        for ep in self._endpoints:
            if ep.key in self._by_key:
                raise ValueError(f"duplicate endpoint key '{ep.key}'")
            self._by_key[ep.key] = ep

    def __iter__(self) -> Iterator[EndpointConfig]:
        return iter(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def keys(self) -> List[str]:
        return [ep.key for ep in self._endpoints]

    def get(self, key: str) -> Optional[EndpointConfig]:
        return self._by_key.get(key)
