"""Tests for logging setup and credential redaction."""

import json
import logging
import logging.handlers
import sys

import pytest
from unittest.mock import MagicMock

from market_data_provider.utils.logging import (
    ContextualLogger,
    StructuredFormatter,
    _parse_file_size,
    get_logger,
    log_api_call,
    redact_params,
    redact_text,
    setup_logging,
)


class TestRedaction:

    @pytest.mark.parametrize('text,expected', [
        ('https://x.test/query?function=OVERVIEW&apikey=abc123',
         'https://x.test/query?function=OVERVIEW&apikey=[FILTERED]'),
        ('/query?apikey=abc123&function=FX_DAILY', '/query?apikey=[FILTERED]&function=FX_DAILY'),
        ("params {'APIKEY=secret'}", "params {'APIKEY=[FILTERED]'}"),
        ('no credentials here', 'no credentials here'),
    ])
    def test_redact_text(self, text, expected):
        assert redact_text(text) == expected

    def test_redact_text_empty(self):
        assert redact_text('') == ''
        assert redact_text(None) is None

    def test_redact_params(self):
        params = {'function': 'OVERVIEW', 'apikey': 'abc123'}

        assert redact_params(params) == {'function': 'OVERVIEW', 'apikey': '[FILTERED]'}
        assert params['apikey'] == 'abc123'

    def test_redact_params_empty(self):
        assert redact_params(None) == {}


class TestStructuredFormatter:

    def test_message_and_extra_fields(self):
        record = logging.LogRecord(
            'market_data_provider.test', logging.INFO, __file__, 10,
            'GET /query?apikey=abc123', None, None
        )
        record.extra_fields = {'symbol': 'IBM'}

        entry = json.loads(StructuredFormatter().format(record))

        assert entry['level'] == 'INFO'
        assert entry['message'] == 'GET /query?apikey=[FILTERED]'
        assert entry['symbol'] == 'IBM'

    def test_exception_is_redacted(self):
        try:
            raise RuntimeError('failed for apikey=abc123')
        except RuntimeError:
            exc_info = sys.exc_info()
        record = logging.LogRecord(
            'market_data_provider.test', logging.ERROR, __file__, 10, 'boom', None, exc_info
        )

        output = StructuredFormatter().format(record)

        assert 'abc123' not in output
        assert json.loads(output)['exception']['type'] == 'RuntimeError'


class TestLoggers:

    def test_get_logger_prefixes_package_name(self):
        assert get_logger('adapters.utils').logger.name == 'market_data_provider.adapters.utils'
        assert get_logger('market_data_provider.series').logger.name == 'market_data_provider.series'

    def test_contextual_logger_merges_context(self):
        base = MagicMock()
        logger = ContextualLogger(base)
        logger.set_context(symbol='IBM')

        logger.warning('slow', extra={'wait': 1.1})

        base.log.assert_called_once_with(
            logging.WARNING, 'slow', extra={'extra_fields': {'symbol': 'IBM', 'wait': 1.1}}
        )

    def test_log_api_call_redacts_parameters(self):
        logger = MagicMock()

        log_api_call(logger, 'alpha_vantage', '/query', {'apikey': 'abc123', 'function': 'OVERVIEW'})

        extra = logger.debug.call_args[1]['extra']
        assert extra['parameters'] == {'apikey': '[FILTERED]', 'function': 'OVERVIEW'}

    def test_log_api_call_error(self):
        logger = MagicMock()

        log_api_call(logger, 'alpha_vantage', '/query', error=ValueError('bad apikey=abc123'))

        extra = logger.error.call_args[1]['extra']
        assert extra['error'] == 'bad apikey=[FILTERED]'

    def test_setup_logging_file_handler(self, tmp_path):
        log_file = tmp_path / 'logs' / 'provider.log'

        try:
            logger = setup_logging(log_level='DEBUG', log_file=str(log_file))

            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 2
            assert log_file.parent.exists()
        finally:
            for handler in logger.handlers:
                handler.close()
            setup_logging(log_level='INFO')

    def test_setup_logging_keeps_zero_backup_count(self, tmp_path):
        log_file = tmp_path / 'provider.log'

        logger = setup_logging(log_level='INFO', log_file=str(log_file), backup_count=0)
        try:
            file_handlers = [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
            assert len(file_handlers) == 1
            assert file_handlers[0].backupCount == 0
        finally:
            for handler in logger.handlers:
                handler.close()
            setup_logging(log_level='INFO')

    @pytest.mark.parametrize('size,expected', [
        ('10MB', 10 * 1024 * 1024),
        ('512kb', 512 * 1024),
        ('1GB', 1024 ** 3),
        ('2048', 2048),
    ])
    def test_parse_file_size(self, size, expected):
        assert _parse_file_size(size) == expected
