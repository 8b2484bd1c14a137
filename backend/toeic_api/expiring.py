from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class ExpiringStore(Generic[K, V]):
	"""Process-wide key/value map whose entries expire after a TTL.

	Expired entries are dropped lazily on read and in bulk by ``sweep()``,
	which the maintenance task calls periodically.
	"""

	def __init__(self, default_ttl: float, *, clock: Callable[[], float] = time.monotonic) -> None:
		if default_ttl <= 0:
			raise ValueError("default_ttl must be positive")
		self.default_ttl = default_ttl
		self._clock = clock
		self._lock = threading.Lock()
		self._entries: Dict[K, Tuple[float, V]] = {}

	def set(self, key: K, value: V, ttl: Optional[float] = None) -> None:
		expires_at = self._clock() + (ttl if ttl is not None else self.default_ttl)
		with self._lock:
			self._entries[key] = (expires_at, value)

	def get(self, key: K) -> Optional[V]:
		with self._lock:
			entry = self._entries.get(key)
			if entry is None:
				return None
			expires_at, value = entry
			if expires_at <= self._clock():
				del self._entries[key]
				return None
			return value

	def pop(self, key: K) -> Optional[V]:
		with self._lock:
			entry = self._entries.pop(key, None)
		if entry is None or entry[0] <= self._clock():
			return None
		return entry[1]

	def sweep(self) -> int:
		now = self._clock()
		with self._lock:
			expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
			for k in expired:
				del self._entries[k]
		return len(expired)

	def clear(self) -> None:
		with self._lock:
			self._entries.clear()

	def __contains__(self, key: object) -> bool:
		return self.get(key) is not None  # type: ignore[arg-type]

	def __len__(self) -> int:
		with self._lock:
			return len(self._entries)
