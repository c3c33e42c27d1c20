import uvicorn
from vybe_auth import __main__ as entrypoint
from vybe_auth.config.settings import config_settings


def test_runs_app_with_configured_bind(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    entrypoint.main([])

    assert calls == [("vybe_auth.main:app", {"host": config_settings.HOST, "port": config_settings.PORT,
                                              "reload": config_settings.RELOAD})]


def test_command_line_overrides_bind(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))

    entrypoint.main(["--host", "127.0.0.1", "--port", "9001", "--reload"])

    assert calls == [{"host": "127.0.0.1", "port": 9001, "reload": True}]
