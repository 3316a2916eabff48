"""Tests for the HITL request/response helpers."""

from tuitionlift.graph.hitl import HITLInputType, HITLProtocol, InterruptSignal


def _request(input_type=HITLInputType.APPROVAL):
    return HITLProtocol.create_request(
        request_type="sai_range_confirmation",
        message="Use your SAI range?",
        thread_id="user_42",
        node_id="SaiConfirm",
        input_type=input_type,
    )


class TestHITLProtocol:
    def test_create_request(self):
        request = _request()
        assert request.request_id == "user_42:SaiConfirm"
        assert request.to_dict() == {
            "type": "sai_range_confirmation",
            "message": "Use your SAI range?",
            "threadId": "user_42",
            "node": "SaiConfirm",
        }

    def test_parse_approval(self):
        request = _request()
        assert HITLProtocol.parse_response(" Yes ", request).value is True
        assert HITLProtocol.parse_response("approve", request).value is True
        assert HITLProtocol.parse_response("no", request).value is False
        assert HITLProtocol.parse_response("maybe later", request).value is False

    def test_parse_keeps_raw_input(self):
        response = HITLProtocol.parse_response("  OK  ", _request())
        assert response.value is True
        assert response.raw_input == "  OK  "
        assert response.request_id == "user_42:SaiConfirm"

    def test_format_for_display(self):
        text = HITLProtocol.format_for_display(_request())
        assert text.startswith("Use your SAI range?")
        assert text.endswith("Approve? [yes/no]")


def test_interrupt_signal_exposes_request():
    signal = InterruptSignal(thread_id="user_42", request=_request())
    assert signal.node_id == "SaiConfirm"
    assert signal.to_dict()["type"] == "sai_range_confirmation"
