"""로깅 설정 테스트"""

import logging

from toremain.core.logging import NOISY_LOGGERS, get_logger, setup_logging


def test_quiets_http_libraries() -> None:
    setup_logging("info")
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_debug_keeps_library_loggers() -> None:
    logging.getLogger("httpx").setLevel(logging.NOTSET)
    setup_logging("DEBUG")
    assert logging.getLogger("httpx").level == logging.NOTSET


def test_get_logger_uses_module_name() -> None:
    assert get_logger("toremain.services.nft").name == "toremain.services.nft"
