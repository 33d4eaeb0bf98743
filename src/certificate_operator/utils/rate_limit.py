"""Rate limiting utilities for API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from .. import metrics

_F = TypeVar("_F", bound=Callable[..., Any])

# Rate limit configuration
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))
_CLOUD_RATE_LIMIT_PER_SECOND = float(os.getenv("CLOUD_RATE_LIMIT_PER_SECOND", "2.0"))


class _Throttle:
    """Minimum-interval throttle shared by all worker threads."""

    def __init__(self, api_type: str, per_second: float) -> None:
        self.api_type = api_type
        self.min_interval = 1.0 / per_second if per_second > 0 else 0.0
        self.last_call_time = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            time_since_last_call = time.time() - self.last_call_time
            if time_since_last_call < self.min_interval:
                metrics.rate_limit_hits_total.labels(api_type=self.api_type).inc()
                time.sleep(self.min_interval - time_since_last_call)
            self.last_call_time = time.time()


_k8s_throttle = _Throttle("k8s", _K8S_RATE_LIMIT_PER_SECOND)
_cloud_throttle = _Throttle("cloud", _CLOUD_RATE_LIMIT_PER_SECOND)


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        _k8s_throttle.wait()
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def rate_limit_cloud(func: _F) -> _F:
    """Decorator to rate limit calls to cloud provider APIs (ACM, Cloudflare)."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        _cloud_throttle.wait()
        return func(*args, **kwargs)

    return wrapper  # type: ignore
