"""Tests for the Go module proxy client."""

import json
import threading
from unittest.mock import MagicMock, patch

import pytest

from modupgrade.constants import Constants
from modupgrade.registry.goproxy import GoProxyClient, escape_path, parse_goproxy
from modupgrade.versioning.models import QueryErrorKind

PROXY = "https://proxy.example"


def _info(version):
    return 200, {}, json.dumps({"Version": version, "Time": "2024-01-01T00:00:00Z"})


class TestParseGoproxy:
    """GOPROXY list parsing."""

    def test_default_when_empty(self):
        assert parse_goproxy(None) == [(Constants.GOPROXY_DEFAULT, False)]
        assert parse_goproxy("  ") == [(Constants.GOPROXY_DEFAULT, False)]

    def test_separators(self):
        assert parse_goproxy("https://a,https://b|direct") == [
            ("https://a", False),
            ("https://b", True),
            ("direct", False),
        ]

    def test_env_var_is_used_when_no_proxy_given(self, monkeypatch):
        monkeypatch.setenv("GOPROXY", "https://env.example")
        client = GoProxyClient()
        assert client.entries == [("https://env.example", False)]


class TestEscapePath:
    """Case-encoding of module paths in URLs."""

    def test_upper_case_is_escaped(self):
        assert escape_path("github.com/Azure/azure-sdk") == "github.com/!azure/azure-sdk"

    def test_lower_case_is_unchanged(self):
        assert escape_path("example.com/dep/v2") == "example.com/dep/v2"


class TestQuery:
    """Lookups against a mocked proxy."""

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_full_version_uses_info_endpoint(self, mock_get):
        mock_get.return_value = _info("v2.3.4")
        client = GoProxyClient(PROXY)

        [result] = client.query(["example.com/dep/v2@v2.3.4"])

        assert result.ok
        assert result.version == "v2.3.4"
        assert mock_get.call_args[0][0] == f"{PROXY}/example.com/dep/v2/@v/v2.3.4.info"

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_short_version_picks_highest_from_list(self, mock_get):
        mock_get.return_value = (200, {}, "v2.0.0\nv2.1.0\nv2.1.3\nv2.10.0\n")
        client = GoProxyClient(PROXY)

        [result] = client.query(["example.com/dep/v2@v2.1"])

        assert result.version == "v2.1.3"
        assert mock_get.call_args[0][0] == f"{PROXY}/example.com/dep/v2/@v/list"

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_bare_path_includes_incompatible_releases(self, mock_get):
        mock_get.return_value = (200, {}, "v1.0.0\nv1.5.0\nv2.0.0+incompatible\n")
        client = GoProxyClient(PROXY)

        [result] = client.query(["example.com/dep"])

        assert result.version == "v2.0.0+incompatible"

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_bare_path_without_tags_asks_for_latest(self, mock_get):
        mock_get.side_effect = [(200, {}, ""), _info("v0.0.0-20240101000000-abcdef123456")]
        client = GoProxyClient(PROXY)

        [result] = client.query(["example.com/dep"])

        assert result.version == "v0.0.0-20240101000000-abcdef123456"
        assert mock_get.call_args[0][0] == f"{PROXY}/example.com/dep/@latest"

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_major_without_matching_versions_is_not_found(self, mock_get):
        mock_get.return_value = (200, {}, "")
        client = GoProxyClient(PROXY)

        [result] = client.query(["example.com/dep/v3@v3"])

        assert result.error_kind == QueryErrorKind.NOT_FOUND

    @pytest.mark.parametrize("status,kind", [
        (404, QueryErrorKind.NOT_FOUND),
        (410, QueryErrorKind.NOT_FOUND),
        (0, QueryErrorKind.TRANSIENT),
        (429, QueryErrorKind.TRANSIENT),
        (503, QueryErrorKind.TRANSIENT),
        (400, QueryErrorKind.INVALID),
    ])
    @patch("modupgrade.registry.goproxy.robust_get")
    def test_status_classification(self, mock_get, status, kind):
        mock_get.return_value = (status, {}, "not found: example.com/dep/v9@v9: invalid version")
        client = GoProxyClient(PROXY)

        [result] = client.query(["example.com/dep/v9@v9.0.0"])

        assert not result.ok
        assert result.error_kind == kind
        assert result.error.startswith("not found")

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_undecodable_info_is_invalid(self, mock_get):
        mock_get.return_value = (200, {}, "<html>")
        client = GoProxyClient(PROXY)

        [result] = client.query(["example.com/dep@v1.0.0"])

        assert result.error_kind == QueryErrorKind.INVALID

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_invalid_query_is_rejected_without_a_request(self, mock_get):
        client = GoProxyClient(PROXY)

        [result] = client.query(["example.com/dep@bogus"])

        assert result.error_kind == QueryErrorKind.INVALID
        mock_get.assert_not_called()

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_results_follow_input_order(self, mock_get):
        mock_get.side_effect = [_info("v2.0.0"), (404, {}, "not found")]
        client = GoProxyClient(PROXY)

        results = client.query(["example.com/dep/v2@v2.0.0", "example.com/dep/v3@v3.0.0"])

        assert [r.spec for r in results] == ["example.com/dep/v2@v2.0.0", "example.com/dep/v3@v3.0.0"]
        assert results[0].ok and results[1].not_found


class TestMemoization:
    """Answers are cached per client, transient failures excepted."""

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_repeated_query_hits_the_proxy_once(self, mock_get):
        mock_get.return_value = _info("v2.0.0")
        client = GoProxyClient(PROXY)

        client.query(["example.com/dep/v2@v2.0.0"])
        client.query(["example.com/dep/v2@v2.0.0"])

        assert mock_get.call_count == 1

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_transient_failures_are_not_cached(self, mock_get):
        mock_get.side_effect = [(503, {}, "unavailable"), _info("v2.0.0")]
        client = GoProxyClient(PROXY)

        first = client.query(["example.com/dep/v2@v2.0.0"])[0]
        second = client.query(["example.com/dep/v2@v2.0.0"])[0]

        assert first.error_kind == QueryErrorKind.TRANSIENT
        assert second.ok


class TestProxyList:
    """Fall-through between GOPROXY entries."""

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_comma_falls_through_on_not_found(self, mock_get):
        mock_get.side_effect = [(404, {}, "not found"), _info("v2.0.0")]
        client = GoProxyClient("https://a.example,https://b.example")

        [result] = client.query(["example.com/dep/v2@v2.0.0"])

        assert result.ok
        assert mock_get.call_args[0][0].startswith("https://b.example/")

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_comma_stops_on_other_errors(self, mock_get):
        mock_get.return_value = (503, {}, "unavailable")
        client = GoProxyClient("https://a.example,https://b.example")

        [result] = client.query(["example.com/dep/v2@v2.0.0"])

        assert result.error_kind == QueryErrorKind.TRANSIENT
        assert mock_get.call_count == 1

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_pipe_falls_through_on_any_error(self, mock_get):
        mock_get.side_effect = [(503, {}, "unavailable"), _info("v2.0.0")]
        client = GoProxyClient("https://a.example|https://b.example")

        [result] = client.query(["example.com/dep/v2@v2.0.0"])

        assert result.ok

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_off_disables_lookups(self, mock_get):
        client = GoProxyClient("off")

        [result] = client.query(["example.com/dep/v2@v2.0.0"])

        assert result.error_kind == QueryErrorKind.TRANSIENT
        mock_get.assert_not_called()

    @patch("modupgrade.registry.goproxy.robust_get")
    def test_direct_only_has_no_usable_proxy(self, mock_get):
        client = GoProxyClient("direct")

        [result] = client.query(["example.com/dep/v2@v2.0.0"])

        assert result.error_kind == QueryErrorKind.INVALID
        mock_get.assert_not_called()


class TestSessions:
    """Per-thread HTTP sessions."""

    @patch("modupgrade.registry.goproxy.requests.Session")
    @patch("modupgrade.registry.goproxy.robust_get")
    def test_close_releases_every_thread_session(self, mock_get, mock_session):
        mock_get.return_value = _info("v2.0.0")
        mock_session.side_effect = lambda: MagicMock()
        client = GoProxyClient(PROXY)

        client.query(["example.com/a/v2@v2.0.0"])
        worker = threading.Thread(target=client.query, args=(["example.com/b/v2@v2.0.0"],))
        worker.start()
        worker.join()
        sessions = [call.kwargs["session"] for call in mock_get.call_args_list]

        client.close()

        assert len({id(s) for s in sessions}) == 2
        for session in sessions:
            session.close.assert_called_once_with()
