from .logger import setup_logging, get_logger
from .metrics import (
    setup_metrics, MESSAGES_PUBLISHED, MESSAGES_RECEIVED,
    TOKENS_ISSUED, TOKEN_ERRORS, API_REQUEST_COUNT, API_REQUEST_DURATION
)
