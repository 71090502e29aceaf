import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

# 요청마다 INFO 로그를 남기는 외부 라이브러리
NOISY_LOGGERS = ("httpx", "httpcore", "multipart")


def setup_logging(level: str = "INFO", quiet_libraries: bool = True) -> None:
    """루트 로거 설정. 레벨 이름이 잘못되면 INFO 로 둔다."""
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if quiet_libraries and resolved > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
