from __future__ import annotations

import time


class IntegrationError(RuntimeError):
    """An external provider call failed."""


class IntegrationMisconfiguredError(RuntimeError):
    pass


def epoch_ms() -> int:
    return int(time.time() * 1000)
