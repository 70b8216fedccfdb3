"""Test notification delivery."""

from conftest import RecordingNotifier

from attachguard.notify import (
    CLOUD_STORAGE_PROXY_NOTICE,
    HTTP_PROXY_NOTICE,
    ClickNotifier,
    NullNotifier,
    send,
)


def test_send_delivers_notice():
    notifier = RecordingNotifier()
    send(notifier, HTTP_PROXY_NOTICE)
    assert notifier.notices == [
        ("Using CORS proxy", "Remote database accessed via CORS proxy for compatibility", 3000),
    ]


def test_cloud_notice_duration():
    assert CLOUD_STORAGE_PROXY_NOTICE.duration_ms == 5000


def test_send_swallows_sink_failure(caplog):
    class Broken:
        def notify(self, title, message, duration_ms):
            raise RuntimeError("sink down")

    send(Broken(), HTTP_PROXY_NOTICE)
    assert "notification sink failed" in caplog.text


def test_null_notifier():
    send(NullNotifier(), HTTP_PROXY_NOTICE)


def test_click_notifier_writes_stderr(capsys):
    send(ClickNotifier(), CLOUD_STORAGE_PROXY_NOTICE)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Using CORS proxy for cloud storage" in captured.err
