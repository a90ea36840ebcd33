"""Unit tests for the service launcher."""

from unittest.mock import patch

from tm_alignment import __main__ as launcher
from tm_alignment.config import Configuration


def make_config(tmp_path, overrides=None) -> Configuration:
    return Configuration(overrides=overrides, environ={}, config_path=tmp_path / "config.properties")


class TestServerOptions:
    """Tests for the uvicorn options derived from server settings."""

    def test_defaults(self, tmp_path):
        options = make_config(tmp_path).server.uvicorn_options()

        assert options == {
            "host": "127.0.0.1",
            "port": 8040,
            "limit_concurrency": 110,
            "backlog": 100,
            "timeout_keep_alive": 20,
        }

    def test_overrides(self, tmp_path):
        config = make_config(tmp_path, overrides={
            "server.maxThreads": "4",
            "server.queueSize": "6",
            "server.threadTimeout": "45",
        })

        options = config.server.uvicorn_options()

        assert options["limit_concurrency"] == 10
        assert options["backlog"] == 6
        assert options["timeout_keep_alive"] == 45


class TestMain:
    """Tests for main()."""

    def test_runs_server_with_configured_limits(self, tmp_path):
        config = make_config(tmp_path, overrides={"server.port": "9001", "server.maxThreads": "2"})

        with patch.object(launcher, "Configuration", return_value=config), \
                patch.object(launcher.uvicorn, "run") as run:
            assert launcher.main() == 0

        kwargs = run.call_args.kwargs
        assert kwargs["port"] == 9001
        assert kwargs["limit_concurrency"] == 102

    def test_invalid_configuration_exits_with_error(self, tmp_path):
        config = make_config(tmp_path, overrides={"server.port": "0"})

        with patch.object(launcher, "Configuration", return_value=config), \
                patch.object(launcher.uvicorn, "run") as run:
            assert launcher.main() == 1

        run.assert_not_called()
