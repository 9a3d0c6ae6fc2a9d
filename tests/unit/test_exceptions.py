"""Unit tests for chartlens exceptions."""

import pytest

from chartlens.core.workflow import TimeframeReport
from chartlens.utils.exceptions import (
    ChartlensError,
    ConfigurationError,
    EncodingError,
    NetworkError,
    QueueTimeoutError,
    RemoteError,
    RequestTimeoutError,
    TerminalRemoteError,
    TimeframeAnalysisError,
    TransientRemoteError,
    ValidationError,
    is_transient_status,
    remote_error_for_status,
)


@pytest.mark.unit
class TestChartlensError:
    def test_base_is_exception(self):
        assert issubclass(ChartlensError, Exception)

    def test_subclasses_are_chartlens_error(self):
        for cls in (
            ValidationError,
            ConfigurationError,
            EncodingError,
            QueueTimeoutError,
            RemoteError,
            TransientRemoteError,
            TerminalRemoteError,
            NetworkError,
            RequestTimeoutError,
            TimeframeAnalysisError,
        ):
            assert issubclass(cls, ChartlensError)

    def test_network_and_timeout_are_terminal(self):
        assert issubclass(NetworkError, TerminalRemoteError)
        assert issubclass(RequestTimeoutError, TerminalRemoteError)


@pytest.mark.unit
class TestValidationError:
    def test_message_and_field(self):
        e = ValidationError("bad value", field="image")
        assert str(e) == "bad value"
        assert e.field == "image"

    def test_field_optional(self):
        assert ValidationError("invalid").field == ""


@pytest.mark.unit
class TestRemoteError:
    def test_status_and_response(self):
        e = TransientRemoteError("slow down", status_code=429, response="body")
        assert e.status_code == 429
        assert e.response == "body"

    def test_network_error_keeps_original(self):
        inner = ConnectionError("refused")
        e = NetworkError("network failed", original_error=inner)
        assert e.original_error is inner
        assert e.status_code == 0


@pytest.mark.unit
class TestStatusClassification:
    @pytest.mark.parametrize("status", [429, 500, 502, 503, 599])
    def test_transient_statuses(self, status):
        assert is_transient_status(status) is True
        assert isinstance(remote_error_for_status("x", status), TransientRemoteError)

    @pytest.mark.parametrize("status", [0, 400, 401, 403, 404, 422, 600])
    def test_terminal_statuses(self, status):
        assert is_transient_status(status) is False
        assert isinstance(remote_error_for_status("x", status), TerminalRemoteError)


@pytest.mark.unit
class TestTimeframeAnalysisError:
    def test_carries_step_report_and_cause(self):
        report = TimeframeReport(analyses={"4h": "up"}, progress=20)
        cause = TerminalRemoteError("not found", status_code=404)
        e = TimeframeAnalysisError("1h", report, cause)
        assert e.step == "1h"
        assert e.report is report
        assert e.cause is cause
        assert "1h" in str(e)

    def test_other_errors_keep_extra_fields(self):
        assert EncodingError("bad", image_name="a.png").image_name == "a.png"
        assert QueueTimeoutError("late", timeout=2.0).timeout == 2.0
