"""Tests for request pacing and the retrying HTTP client."""

import pytest
import requests
from unittest.mock import patch, MagicMock

from market_data_provider.adapters.utils import HTTPClient, RateLimiter, normalize_symbol
from market_data_provider.utils.exceptions import TransportError


class TestRateLimiter:
    """Test cases for the token bucket."""

    @patch('market_data_provider.adapters.utils.time')
    def test_first_acquire_does_not_wait(self, mock_time):
        mock_time.monotonic.side_effect = [100.0, 100.0]
        limiter = RateLimiter(min_interval=1.1)

        assert limiter.acquire() == 0.0
        mock_time.sleep.assert_not_called()

    @patch('market_data_provider.adapters.utils.time')
    def test_back_to_back_acquire_waits_for_refill(self, mock_time):
        mock_time.monotonic.side_effect = [100.0, 100.0, 100.2]
        limiter = RateLimiter(min_interval=1.1)

        limiter.acquire()
        wait = limiter.acquire()

        assert wait == pytest.approx(0.9)
        assert mock_time.sleep.call_args[0][0] == pytest.approx(0.9)

    @patch('market_data_provider.adapters.utils.time')
    def test_no_wait_after_full_interval(self, mock_time):
        mock_time.monotonic.side_effect = [100.0, 100.0, 100.2, 103.0]
        limiter = RateLimiter(min_interval=1.1)

        limiter.acquire()
        limiter.acquire()
        assert limiter.acquire() == 0.0
        assert mock_time.sleep.call_count == 1

    def test_rejects_invalid_settings(self):
        with pytest.raises(ValueError):
            RateLimiter(min_interval=-1)
        with pytest.raises(ValueError):
            RateLimiter(burst_size=0)


def make_response(status_code=200, body=None, reason='OK'):
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = body if body is not None else {}
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return HTTPClient(
        base_url='https://av.example.test',
        rate_limiter=MagicMock(),
        max_retries=2,
        default_params={'apikey': 'secret-key'},
        session=session
    )


class TestHTTPClient:
    """Test cases for HTTPClient."""

    def test_get_injects_credential_and_returns_body(self, client, session):
        session.request.return_value = make_response(body={'bestMatches': []})

        body = client.get('/query', params={'function': 'SYMBOL_SEARCH', 'keywords': 'IBM'})

        assert body == {'bestMatches': []}
        kwargs = session.request.call_args[1]
        assert kwargs['url'] == 'https://av.example.test/query'
        assert kwargs['params'] == {'apikey': 'secret-key', 'function': 'SYMBOL_SEARCH', 'keywords': 'IBM'}
        assert kwargs['timeout'] == 30
        client.rate_limiter.acquire.assert_called_once()

    @patch('market_data_provider.adapters.utils.random.uniform', return_value=0.0)
    @patch('market_data_provider.adapters.utils.time.sleep')
    def test_retries_transient_failure(self, mock_sleep, mock_uniform, client, session):
        session.request.side_effect = [
            requests.ConnectionError('connection reset'),
            make_response(body={'ok': True})
        ]

        assert client.get('/query') == {'ok': True}
        assert session.request.call_count == 2
        assert client.rate_limiter.acquire.call_count == 2
        mock_sleep.assert_called_once_with(pytest.approx(1.1))

    @patch('market_data_provider.adapters.utils.random.uniform', return_value=0.0)
    @patch('market_data_provider.adapters.utils.time.sleep')
    def test_gives_up_after_max_retries(self, mock_sleep, mock_uniform, client, session):
        session.request.side_effect = requests.Timeout(
            'Read timed out: https://av.example.test/query?function=FX_DAILY&apikey=secret-key'
        )

        with pytest.raises(TransportError) as excinfo:
            client.get('/query', params={'function': 'FX_DAILY'})

        assert session.request.call_count == 3
        assert [c[0][0] for c in mock_sleep.call_args_list] == [pytest.approx(1.1), pytest.approx(2.2)]
        assert excinfo.value.context['retry_count'] == 2
        assert 'secret-key' not in excinfo.value.message
        assert 'apikey=[FILTERED]' in excinfo.value.message

    @patch('market_data_provider.adapters.utils.time.sleep')
    def test_retry_warning_is_redacted(self, mock_sleep, client, session, caplog):
        session.request.side_effect = [
            requests.ConnectionError('failed for /query?apikey=secret-key&function=OVERVIEW'),
            make_response(body={})
        ]

        with caplog.at_level('WARNING'):
            client.get('/query')

        assert 'Retrying' in caplog.text
        assert 'secret-key' not in caplog.text

    @patch('market_data_provider.adapters.utils.time.sleep')
    def test_http_error_status_is_not_retried(self, mock_sleep, client, session):
        session.request.return_value = make_response(status_code=500, reason='Internal Server Error')

        with pytest.raises(TransportError) as excinfo:
            client.get('/query')

        assert excinfo.value.status_code == 500
        assert 'HTTP 500' in excinfo.value.message
        assert session.request.call_count == 1
        mock_sleep.assert_not_called()

    def test_non_transient_request_exception(self, client, session):
        session.request.side_effect = requests.exceptions.InvalidURL('bad url')

        with pytest.raises(TransportError):
            client.get('/query')
        assert session.request.call_count == 1

    def test_undecodable_body(self, client, session):
        response = make_response()
        response.json.side_effect = ValueError('Expecting value')
        session.request.return_value = response

        with pytest.raises(TransportError) as excinfo:
            client.get('/query')
        assert 'Failed to parse JSON' in excinfo.value.message

    def test_non_object_body(self, client, session):
        session.request.return_value = make_response(body=['not', 'a', 'dict'])

        with pytest.raises(TransportError):
            client.get('/query')

    @patch('market_data_provider.adapters.utils.random.uniform', side_effect=lambda low, high: high)
    def test_backoff_grows_with_jitter_bound(self, mock_uniform, client):
        assert client._backoff_time(0) == pytest.approx(1.1 * 1.5)
        assert client._backoff_time(1) == pytest.approx(2.2 * 1.5)
        assert client._backoff_time(2) == pytest.approx(4.4 * 1.5)


def test_normalize_symbol():
    assert normalize_symbol(' ibm ') == 'IBM'
    assert normalize_symbol('') == ''
    assert normalize_symbol(None) is None
