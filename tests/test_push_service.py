"""Tests for the FCM push adapter."""

from types import SimpleNamespace

from firebase_admin import exceptions, messaging

from api.push_service import INVALID_TOKEN, MulticastResult, build_data, push_service


def _response(ok: bool, error: Exception = None) -> SimpleNamespace:
    return SimpleNamespace(success=ok, message_id="m" if ok else None, exception=error)


def _batch(*responses: SimpleNamespace) -> SimpleNamespace:
    return SimpleNamespace(
        success_count=sum(1 for r in responses if r.success),
        failure_count=sum(1 for r in responses if not r.success),
        responses=list(responses),
    )


class TestBuildData:
    def test_values_are_stringified(self) -> None:
        data = build_data({"count": 3, "flag": True, "id": "abc"})

        assert data["count"] == "3"
        assert data["flag"] == "True"
        assert data["id"] == "abc"

    def test_none_values_dropped_and_timestamp_added(self) -> None:
        data = build_data({"missing": None})

        assert "missing" not in data
        assert "timestamp" in data


class TestNotConfigured:
    def test_multicast_returns_none(self) -> None:
        assert push_service.send_multicast(["t1"], "title", "body") is None

    def test_topic_calls_return_none(self) -> None:
        assert push_service.subscribe_to_topic(["t1"], "all-users") is None
        assert push_service.unsubscribe_from_topic(["t1"], "all-users") is None
        assert push_service.send_to_topic("all-users", "title", "body") is None

    def test_send_to_device_reports_not_configured(self) -> None:
        result = push_service.send_to_device("t1", "title", "body")

        assert result.success is False
        assert result.error_code == "not_configured"

    def test_is_initialized_false(self) -> None:
        assert push_service.is_initialized() is False


class TestSendMulticast:
    def test_all_tokens_delivered(self, fcm: SimpleNamespace) -> None:
        result = push_service.send_multicast(["t1", "t2"], "Hello", "World", {"type": "system"})

        assert result == MulticastResult(success_count=2, failure_count=0, invalid_tokens=[])
        message = fcm.send_each_for_multicast.call_args.args[0]
        assert message.tokens == ["t1", "t2"]
        assert message.notification.title == "Hello"
        assert message.notification.body == "World"
        assert message.data["type"] == "system"
        assert "timestamp" in message.data

    def test_chunks_at_500_tokens(self, fcm: SimpleNamespace) -> None:
        tokens = [f"token-{i}" for i in range(1203)]

        result = push_service.send_multicast(tokens, "t", "b")

        sizes = [len(c.args[0].tokens) for c in fcm.send_each_for_multicast.call_args_list]
        assert sizes == [500, 500, 203]
        assert result.success_count == 1203

    def test_collects_invalid_tokens(self, fcm: SimpleNamespace) -> None:
        fcm.send_each_for_multicast.side_effect = None
        fcm.send_each_for_multicast.return_value = _batch(
            _response(True),
            _response(False, messaging.UnregisteredError("not registered")),
            _response(False, exceptions.InvalidArgumentError("bad token")),
            _response(False, exceptions.UnavailableError("try later")),
        )

        result = push_service.send_multicast(["ok", "gone", "bad", "flaky"], "t", "b")

        assert result.success_count == 1
        assert result.failure_count == 3
        assert result.invalid_tokens == ["gone", "bad"]

    def test_counts_summed_across_chunks(self, fcm: SimpleNamespace) -> None:
        def respond(message):
            first_ok = _response(True)
            rest = [
                _response(False, messaging.UnregisteredError("gone"))
                for _ in message.tokens[1:]
            ]
            return _batch(first_ok, *rest)

        fcm.send_each_for_multicast.side_effect = respond
        tokens = [f"token-{i}" for i in range(502)]

        result = push_service.send_multicast(tokens, "t", "b")

        assert result.success_count == 2
        assert result.failure_count == 500
        assert "token-0" not in result.invalid_tokens
        assert "token-500" not in result.invalid_tokens
        assert "token-501" in result.invalid_tokens
        assert len(result.invalid_tokens) == 500

    def test_empty_token_list_skips_sdk(self, fcm: SimpleNamespace) -> None:
        result = push_service.send_multicast([], "t", "b")

        assert result == MulticastResult()
        fcm.send_each_for_multicast.assert_not_called()

    def test_sdk_exception_returns_none(self, fcm: SimpleNamespace) -> None:
        fcm.send_each_for_multicast.side_effect = exceptions.UnavailableError("down")

        assert push_service.send_multicast(["t1"], "t", "b") is None


class TestSendToDevice:
    def test_success(self, fcm: SimpleNamespace) -> None:
        result = push_service.send_to_device("t1", "title", "body", {"a": 1})

        assert result.success is True
        assert result.message_id == "projects/test/messages/1"
        message = fcm.send.call_args.args[0]
        assert message.token == "t1"
        assert message.data["a"] == "1"

    def test_unregistered_token_flagged_invalid(self, fcm: SimpleNamespace) -> None:
        fcm.send.side_effect = messaging.UnregisteredError("gone")

        result = push_service.send_to_device("t1", "title", "body")

        assert result.success is False
        assert result.error_code == INVALID_TOKEN

    def test_other_errors_not_flagged_invalid(self, fcm: SimpleNamespace) -> None:
        fcm.send.side_effect = exceptions.InternalError("boom")

        result = push_service.send_to_device("t1", "title", "body")

        assert result.success is False
        assert result.error_code == "exception"


class TestSendToDevices:
    def test_batch_send_reports_invalid(self, fcm: SimpleNamespace) -> None:
        fcm.send_each.return_value = _batch(
            _response(True),
            _response(False, messaging.UnregisteredError("gone")),
        )

        result = push_service.send_to_devices(["a", "b"], "t", "b")

        messages = fcm.send_each.call_args.args[0]
        assert [m.token for m in messages] == ["a", "b"]
        assert result.success_count == 1
        assert result.invalid_tokens == ["b"]


class TestTopics:
    def test_subscribe_and_unsubscribe(self, fcm: SimpleNamespace) -> None:
        assert push_service.subscribe_to_topic(["t1"], "user-1").success_count == 1
        assert push_service.unsubscribe_from_topic(["t1"], "user-1").success_count == 1

        fcm.subscribe_to_topic.assert_called_once_with(["t1"], "user-1")
        fcm.unsubscribe_from_topic.assert_called_once_with(["t1"], "user-1")

    def test_subscribe_error_returns_none(self, fcm: SimpleNamespace) -> None:
        fcm.subscribe_to_topic.side_effect = exceptions.InvalidArgumentError("bad topic")

        assert push_service.subscribe_to_topic(["t1"], "bad topic!") is None

    def test_send_to_topic(self, fcm: SimpleNamespace) -> None:
        message_id = push_service.send_to_topic("all-users", "Notice", "Campus closed")

        assert message_id == "projects/test/messages/1"
        message = fcm.send.call_args.args[0]
        assert message.topic == "all-users"

    def test_send_to_topic_error_returns_none(self, fcm: SimpleNamespace) -> None:
        fcm.send.side_effect = exceptions.InternalError("boom")

        assert push_service.send_to_topic("all-users", "t", "b") is None
