"""
Logging configuration.

- Development / testing: human-readable colored lines
- Production: JSON lines (log aggregator compatible)
- Log level: LOG_LEVEL env variable
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

# Extra attributes services pass through logger.info(..., extra={...})
EXTRA_FIELDS = (
    'inspection_id',
    'vehicle_id',
    'item_id',
    'work_order_id',
    'event_type',
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry['exception'] = self.formatException(record.exc_info)
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        return json.dumps(log_entry, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    """Human-readable colored formatter for development."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        ts = datetime.now().strftime('%H:%M:%S')
        inspection_id = getattr(record, 'inspection_id', None)
        scope = f' [{inspection_id}]' if inspection_id else ''
        base = f'{color}{ts} {record.levelname:<8}{self.RESET} {record.name}:{scope} {record.getMessage()}'
        if record.exc_info and record.exc_info[0] is not None:
            base += '\n' + self.formatException(record.exc_info)
        return base


def configure_logging(app):
    """
    Set up logging for the Flask app.

    Reads LOG_LEVEL from env (default: DEBUG in dev, INFO in prod).
    Development/testing -> ReadableFormatter on stderr
    Production          -> JSONFormatter on stderr
    """
    is_testing = app.config.get('TESTING', False)
    is_prod = not app.config.get('DEBUG', False) and not is_testing

    level_name = os.getenv('LOG_LEVEL', 'INFO' if is_prod else 'DEBUG')
    level = getattr(logging, level_name.upper(), logging.INFO)

    formatter = JSONFormatter() if is_prod else ReadableFormatter()

    root = logging.getLogger()
    # Remove existing handlers to prevent duplicates across app instances
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ('urllib3', 'werkzeug'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info('Logging configured: level=%s format=%s',
                        level_name, 'JSON' if is_prod else 'readable')
