from __future__ import annotations

import logging

from ugc_rewards_api.core.logging import configure_logging


def test_noisy_library_loggers_are_quieted():
    configure_logging(service_name="ugc-rewards-api", environment="development", version="test")

    assert logging.getLogger("aiosqlite").level == logging.WARNING
    assert logging.getLogger("botocore").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
