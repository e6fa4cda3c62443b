"""Tests for notification composition and delivery."""

import json

import requests
import responses

from ynab_importer.services.notifier import (
    PUSHBULLET_PUSHES_URL,
    LogNotifier,
    PushbulletNotifier,
    build_notification_message,
)


class TestBuildMessage:
    """Tests for the summary text."""

    def test_count_only(self):
        assert build_notification_message(3, []) == "There are 3 new transactions."

    def test_alerts_appended(self):
        message = build_notification_message(
            1,
            [
                'Account "visa" last ran successfully 4 days ago',
                'Account "amex" has never run successfully',
            ],
        )

        assert message == (
            "There are 1 new transactions.\n\n"
            'Account "visa" last ran successfully 4 days ago\n'
            'Account "amex" has never run successfully'
        )


class TestPushbulletNotifier:
    """Tests for Pushbullet delivery."""

    @responses.activate
    def test_send_note(self):
        responses.add(responses.POST, PUSHBULLET_PUSHES_URL, json={"active": True}, status=200)

        notifier = PushbulletNotifier(token="pb-token", title="Import", device_iden="phone")

        assert notifier.send("There are 2 new transactions.") is True

        request = responses.calls[0].request
        assert request.headers["Access-Token"] == "pb-token"
        assert json.loads(request.body) == {
            "type": "note",
            "title": "Import",
            "body": "There are 2 new transactions.",
            "device_iden": "phone",
        }

    @responses.activate
    def test_rejected_push_returns_false(self, caplog):
        responses.add(responses.POST, PUSHBULLET_PUSHES_URL, json={"error": {}}, status=401)

        assert PushbulletNotifier(token="bad").send("hi") is False
        assert "Pushbullet rejected" in caplog.text

    @responses.activate
    def test_connection_error_returns_false(self):
        responses.add(
            responses.POST,
            PUSHBULLET_PUSHES_URL,
            body=requests.exceptions.ConnectionError("offline"),
        )

        assert PushbulletNotifier(token="pb-token").send("hi") is False


def test_log_notifier(caplog):
    caplog.set_level("INFO")

    assert LogNotifier().send("There are 1 new transactions.") is True
    assert "There are 1 new transactions." in caplog.text
