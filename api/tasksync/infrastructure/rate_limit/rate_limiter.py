"""
Rate limiter de ventana deslizante.

Motivacion:
- ClickUp limita a 100 requests por minuto por workspace; superar el
  limite devuelve 429 y, repetido, puede desactivar integraciones.
- Full sync, sync de carpetas y webhooks comparten el mismo cliente, por
  lo que el control de admision debe ser comun a todos los caminos.

Caracteristicas:
- Un log de timestamps por bucket (key); se poda en cada admision
- admit() nunca bloquea ni lanza excepciones
- await_slot() espera (polling cada poll_interval_s) sin timeout propio;
  quien necesite un deadline debe envolverlo en asyncio.wait_for()
- Storage inyectable: en memoria por defecto (estado por proceso, se
  pierde al reiniciar). Para varias instancias se puede sustituir por un
  cache compartido implementando RateLimitStore.
"""

from __future__ import annotations

import asyncio
import random
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional, Protocol

from loguru import logger


# Intervalo por defecto entre chequeos en await_slot (segundos)
DEFAULT_POLL_INTERVAL_S = 0.1

# Probabilidad de limpieza oportunista de buckets vacios por admision
DEFAULT_CLEANUP_PROBABILITY = 0.01


class RateLimitStore(Protocol):
    """Almacenamiento de logs de requests por bucket."""

    def try_acquire(self, key: str, now_ms: float, window_ms: float, max_requests: int) -> bool:
        """Poda, verifica y registra atomicamente. True si se admite."""
        ...

    def oldest(self, key: str) -> Optional[float]:
        """Timestamp (ms) mas antiguo registrado en el bucket, si existe."""
        ...

    def reset(self, key: str) -> None:
        ...

    def cleanup(self, now_ms: float, window_ms: float) -> int:
        """Elimina buckets sin requests dentro de la ventana. Retorna cuantos."""
        ...

    def bucket_count(self) -> int:
        ...


class InMemoryRateLimitStore:
    """
    Store en memoria con un lock por bucket.

    Implementacion:
    - `threading.Lock` por bucket: sirve tanto desde el event loop como
      desde threads (p.ej. jobs ejecutados con asyncio.to_thread).
    - `_meta_lock` protege el diccionario de buckets.
    """

    def __init__(self) -> None:
        self._buckets: Dict[str, Deque[float]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._meta_lock = threading.Lock()

    def _get_or_create(self, key: str) -> tuple[Deque[float], threading.Lock]:
        with self._meta_lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = deque()
                self._buckets[key] = bucket
                self._locks[key] = threading.Lock()
            return bucket, self._locks[key]

    @staticmethod
    def _prune(bucket: Deque[float], window_start: float) -> None:
        while bucket and bucket[0] <= window_start:
            bucket.popleft()

    def try_acquire(self, key: str, now_ms: float, window_ms: float, max_requests: int) -> bool:
        bucket, lock = self._get_or_create(key)
        with lock:
            self._prune(bucket, now_ms - window_ms)
            if len(bucket) >= max_requests:
                return False
            bucket.append(now_ms)
            return True

    def oldest(self, key: str) -> Optional[float]:
        with self._meta_lock:
            bucket = self._buckets.get(key)
            lock = self._locks.get(key)
        if bucket is None or lock is None:
            return None
        with lock:
            return bucket[0] if bucket else None

    def reset(self, key: str) -> None:
        with self._meta_lock:
            self._buckets.pop(key, None)
            self._locks.pop(key, None)

    def cleanup(self, now_ms: float, window_ms: float) -> int:
        removed = 0
        with self._meta_lock:
            for key in list(self._buckets.keys()):
                lock = self._locks[key]
                # Bucket en uso: se revisa en la proxima limpieza
                if not lock.acquire(blocking=False):
                    continue
                try:
                    bucket = self._buckets[key]
                    self._prune(bucket, now_ms - window_ms)
                    if not bucket:
                        del self._buckets[key]
                        del self._locks[key]
                        removed += 1
                finally:
                    lock.release()
        return removed

    def bucket_count(self) -> int:
        with self._meta_lock:
            return len(self._buckets)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """
    Control de admision por ventana deslizante (max_requests por window_ms).

    Los buckets son independientes: un cliente protegido por un limiter
    por minuto y otro de ventana corta debe obtener slot en ambos.

    Ejemplo:
        limiter = RateLimiter(max_requests=100, window_ms=60_000)
        await limiter.await_slot("clickup-api-minute")
    """

    def __init__(
        self,
        max_requests: int,
        window_ms: float,
        *,
        store: Optional[RateLimitStore] = None,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        cleanup_probability: float = DEFAULT_CLEANUP_PROBABILITY,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests debe ser > 0")
        if window_ms <= 0:
            raise ValueError("window_ms debe ser > 0")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.poll_interval_s = poll_interval_s
        self._store: RateLimitStore = store or InMemoryRateLimitStore()
        self._cleanup_probability = cleanup_probability
        self._clock = clock

    def admit(self, key: str) -> bool:
        """
        Verifica (sin bloquear) si una llamada en el bucket `key` esta
        permitida y, si lo esta, la registra.

        Returns:
            True si se admite, False si el bucket esta lleno
        """
        now = self._clock()
        admitted = self._store.try_acquire(key, now, self.window_ms, self.max_requests)

        if admitted and random.random() < self._cleanup_probability:
            removed = self._store.cleanup(now, self.window_ms)
            if removed:
                logger.debug(f"RateLimiter: {removed} bucket(s) vacios eliminados")

        return admitted

    async def await_slot(self, key: str) -> None:
        """
        Espera hasta que admit(key) retorne True.

        No tiene timeout: usar asyncio.wait_for() si se requiere un deadline.
        """
        waited = False
        while not self.admit(key):
            if not waited:
                logger.debug(
                    f"RateLimiter: bucket '{key}' lleno, esperando "
                    f"{self.time_until_reset(key):.0f}ms aprox."
                )
                waited = True
            await asyncio.sleep(self.poll_interval_s)

    def time_until_reset(self, key: str) -> float:
        """Milisegundos hasta que se libere el slot mas antiguo del bucket."""
        oldest = self._store.oldest(key)
        if oldest is None:
            return 0.0
        return max(0.0, oldest + self.window_ms - self._clock())

    def reset(self, key: str) -> None:
        """Elimina el historial del bucket `key`."""
        self._store.reset(key)

    def cleanup(self) -> int:
        """Fuerza la limpieza de buckets vacios. Retorna cuantos elimino."""
        return self._store.cleanup(self._clock(), self.window_ms)

    @property
    def bucket_count(self) -> int:
        """Numero de buckets activos (para monitoreo)."""
        return self._store.bucket_count()
