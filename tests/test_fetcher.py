from unittest.mock import AsyncMock, MagicMock, patch
import pytest
from curl_cffi import CurlError
from stayseeker.fetcher import Fetcher, FetchError


def _make_response(body, status_code=200):
    resp = MagicMock()
    resp.text = body
    resp.status_code = status_code
    return resp


def _make_fetcher(MockSession, side_effect, retries=3) -> tuple[Fetcher, MagicMock]:
    mock_session = MagicMock()
    mock_session.get = AsyncMock(side_effect=side_effect)
    mock_session.close = AsyncMock()
    MockSession.return_value = mock_session
    return Fetcher(timeout=5, retries=retries, backoff=1.0), mock_session


@pytest.mark.asyncio
@patch("stayseeker.fetcher.asyncio.sleep", new_callable=AsyncMock)
@patch("stayseeker.fetcher.requests.AsyncSession")
async def test_fetch_returns_body(MockSession, mock_sleep):
    fetcher, session = _make_fetcher(MockSession, [_make_response("<html>ok</html>")])

    assert await fetcher.fetch("https://example.com/s") == "<html>ok</html>"
    session.get.assert_awaited_once()
    headers = session.get.call_args.kwargs["headers"]
    assert "User-Agent" in headers
    mock_sleep.assert_not_awaited()


@pytest.mark.asyncio
@patch("stayseeker.fetcher.asyncio.sleep", new_callable=AsyncMock)
@patch("stayseeker.fetcher.requests.AsyncSession")
async def test_fetch_retries_with_increasing_backoff(MockSession, mock_sleep):
    fetcher, session = _make_fetcher(
        MockSession,
        [CurlError("Connection refused"), _make_response("", 503), _make_response("<html>ok</html>")],
    )

    assert await fetcher.fetch("https://example.com/s") == "<html>ok</html>"
    assert session.get.await_count == 3
    assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
@patch("stayseeker.fetcher.asyncio.sleep", new_callable=AsyncMock)
@patch("stayseeker.fetcher.requests.AsyncSession")
async def test_fetch_gives_up_after_retry_budget(MockSession, mock_sleep):
    fetcher, session = _make_fetcher(MockSession, [_make_response("", 403)] * 3)

    with pytest.raises(FetchError) as excinfo:
        await fetcher.fetch("https://example.com/s")

    assert excinfo.value.reason == "HTTP 403"
    assert excinfo.value.url == "https://example.com/s"
    assert session.get.await_count == 3
    assert mock_sleep.await_count == 2


@pytest.mark.asyncio
@patch("stayseeker.fetcher.asyncio.sleep", new_callable=AsyncMock)
@patch("stayseeker.fetcher.requests.AsyncSession")
async def test_fetch_reports_timeouts(MockSession, mock_sleep):
    fetcher, _ = _make_fetcher(MockSession, [CurlError("Operation timed out after 5000 ms")], retries=1)

    with pytest.raises(FetchError, match="Request timed out"):
        await fetcher.fetch("https://example.com/s")


@pytest.mark.asyncio
@patch("stayseeker.fetcher.requests.AsyncSession")
async def test_fetcher_closes_session(MockSession):
    fetcher, session = _make_fetcher(MockSession, [])

    async with fetcher:
        pass

    session.close.assert_awaited_once()
