"""Tests for the 8x8 <-> Cognigy transformer lifecycle hooks."""

from dataclasses import replace
from unittest.mock import patch

import pytest

from relay8x8.infra.hashing import redact
from relay8x8.services.transformer import EightByEightTransformer
from relay8x8.whatsapp.errors import DeliveryError, MissingChannelOutput, MissingIdentifier
from relay8x8.whatsapp.sender import EightByEightClient

from .helpers import (
    TEST_CHANNEL_ID,
    TEST_MSISDN,
    FakeResponse,
    LogRecorder,
    RecordingHttp,
    make_inbound_body,
)

SINGLE_URL = "https://chatapps.example.test/api/v1/subaccounts/test-subaccount/messages"
BATCH_URL = SINGLE_URL + "/batch"


def _build(config, store, *responses):
    http = RecordingHttp(*responses)
    transformer = EightByEightTransformer(
        config, store, client=EightByEightClient(config, http=http)
    )
    return transformer, http


def _image_output(url="http://x/y.png"):
    return {"data": {"_cognigy": {"_default": {"_image": {"imageUrl": url}}}}}


class TestRecoverIdentifiers:
    def test_round_trip_after_input(self, config, store):
        transformer, _ = _build(config, store)
        normalized = transformer.handle_input(make_inbound_body())

        assert transformer.recover_identifiers(normalized.user_id, normalized.session_id) == (
            TEST_MSISDN,
            TEST_CHANNEL_ID,
        )

    def test_unknown_session_raises(self, config, store):
        transformer, _ = _build(config, store)

        with pytest.raises(MissingIdentifier):
            transformer.recover_identifiers(redact(TEST_MSISDN), redact(TEST_CHANNEL_ID))

    def test_unhidden_ids_fall_back_to_working_ids(self, config, store):
        cfg = replace(config, hide_user_id=False, hide_session_id=False)
        transformer, _ = _build(cfg, store)

        assert transformer.recover_identifiers(TEST_MSISDN, TEST_CHANNEL_ID) == (
            TEST_MSISDN,
            TEST_CHANNEL_ID,
        )

    def test_only_hidden_id_requires_a_record(self, config, store):
        cfg = replace(config, hide_user_id=False)
        transformer, _ = _build(cfg, store)

        with pytest.raises(MissingIdentifier):
            transformer.recover_identifiers(TEST_MSISDN, redact(TEST_CHANNEL_ID))


class TestHandleOutput:
    def test_sends_single_message_to_clear_msisdn(self, config, store):
        transformer, http = _build(config, store)
        normalized = transformer.handle_input(make_inbound_body())

        transformer.handle_output({"text": "Hi"}, normalized.user_id, normalized.session_id)

        assert len(http.calls) == 1
        call = http.calls[0]
        assert call["url"] == SINGLE_URL
        assert call["json"] == {
            "user": {"msisdn": TEST_MSISDN},
            "type": "text",
            "content": {"text": "Hi"},
        }

    def test_unclassifiable_output_raises_without_sending(self, config, store):
        transformer, http = _build(config, store)
        normalized = transformer.handle_input(make_inbound_body())
        recorder = LogRecorder()

        with patch("relay8x8.services.transformer.logger", recorder):
            with pytest.raises(MissingChannelOutput):
                transformer.handle_output({"data": {}}, normalized.user_id, normalized.session_id)

        assert http.calls == []
        assert recorder.calls[0][0] == "error"

    def test_unknown_session_raises_without_sending(self, config, store):
        transformer, http = _build(config, store)

        with pytest.raises(MissingIdentifier):
            transformer.handle_output({"text": "Hi"}, "nobody", "nowhere")

        assert http.calls == []


class TestHandleExecutionFinished:
    def test_two_outputs_use_one_batch_call_in_order(self, config, store):
        transformer, http = _build(config, store)
        normalized = transformer.handle_input(make_inbound_body())

        transformer.handle_execution_finished(
            {"outputStack": [{"text": "first"}, _image_output()]},
            normalized.user_id,
            normalized.session_id,
        )

        assert [c["url"] for c in http.calls] == [BATCH_URL]
        messages = http.calls[0]["json"]["messages"]
        assert [m["type"] for m in messages] == ["text", "image"]
        assert messages[0]["content"] == {"text": "first"}
        assert messages[1]["content"] == {"url": "http://x/y.png", "text": ""}

    def test_one_output_uses_single_call(self, config, store):
        transformer, http = _build(config, store)
        normalized = transformer.handle_input(make_inbound_body())

        transformer.handle_execution_finished(
            [{"text": "only"}], normalized.user_id, normalized.session_id
        )

        assert [c["url"] for c in http.calls] == [SINGLE_URL]

    def test_unclassifiable_items_are_skipped(self, config, store):
        transformer, http = _build(config, store)
        normalized = transformer.handle_input(make_inbound_body())

        transformer.handle_execution_finished(
            {"outputStack": [{"data": {}}, {"text": "kept"}]},
            normalized.user_id,
            normalized.session_id,
        )

        assert [c["url"] for c in http.calls] == [SINGLE_URL]

    @pytest.mark.parametrize(
        "processed_output", [{"outputStack": []}, [], {}, None, {"outputStack": [{}]}]
    )
    def test_nothing_deliverable_sends_nothing(self, config, store, processed_output):
        transformer, http = _build(config, store)
        normalized = transformer.handle_input(make_inbound_body())

        with pytest.raises(MissingChannelOutput):
            transformer.handle_execution_finished(
                processed_output, normalized.user_id, normalized.session_id
            )

        assert http.calls == []

    def test_delivery_error_propagates(self, config, store):
        transformer, http = _build(config, store, FakeResponse(500, {"message": "boom"}))
        normalized = transformer.handle_input(make_inbound_body())

        with pytest.raises(DeliveryError) as exc_info:
            transformer.handle_execution_finished(
                [{"text": "a"}, {"text": "b"}], normalized.user_id, normalized.session_id
            )

        assert exc_info.value.status_code == 500
        assert len(http.calls) == 1

    def test_replies_come_from_stored_channel(self, config, store):
        transformer, http = _build(config, store)
        normalized = transformer.handle_input(make_inbound_body())
        # later events on the same session cannot change the stored ids
        transformer.handle_input(make_inbound_body(text="again"))

        transformer.handle_execution_finished(
            [{"text": "Hi"}], normalized.user_id, normalized.session_id
        )

        assert http.calls[0]["json"]["user"]["msisdn"] == TEST_MSISDN
