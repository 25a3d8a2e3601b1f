"""
Unit Tests for Capture Policy
=============================
"""

from smsly_audit.policy import (
    AuditMiddlewareConfig,
    CaptureDecisions,
    evaluate_capture_policy,
    render_event_type,
)


class TestEvaluateCapturePolicy:
    """Selectors are resolved once into immutable decisions."""

    def test_defaults(self, request_factory):
        decisions = evaluate_capture_policy(AuditMiddlewareConfig(), request_factory())

        assert decisions == CaptureDecisions(
            include_headers=False,
            include_request_body=False,
            include_response_body=False,
            event_type_name=None,
            should_audit=True,
        )

    def test_constant_selectors(self, request_factory):
        config = AuditMiddlewareConfig(
            include_headers=True,
            include_request_body=True,
            include_response_body=True,
            event_type_name="orders",
        )

        decisions = evaluate_capture_policy(config, request_factory())

        assert decisions.include_headers is True
        assert decisions.include_request_body is True
        assert decisions.include_response_body is True
        assert decisions.event_type_name == "orders"

    def test_callable_selectors_called_once(self, request_factory):
        calls = []

        def include(request):
            calls.append(request.url.path)
            return request.method == "POST"

        config = AuditMiddlewareConfig(
            include_headers=include,
            request_filter=lambda r: r.url.path.startswith("/api/"),
        )

        decisions = evaluate_capture_policy(config, request_factory("POST", "/orders/42"))

        assert decisions.include_headers is True
        assert decisions.should_audit is False
        assert calls == ["/orders/42"]

    def test_event_type_selector_may_return_none(self, request_factory):
        config = AuditMiddlewareConfig(event_type_name=lambda r: None)

        decisions = evaluate_capture_policy(config, request_factory())

        assert decisions.event_type_name is None


class TestRenderEventType:

    def test_default_template(self):
        assert render_event_type(None, "GET", "/orders/42") == "GET /orders/42"

    def test_custom_template(self):
        assert render_event_type("api:{verb}:{url}", "POST", "/sms") == "api:POST:/sms"

    def test_template_without_placeholders(self):
        assert render_event_type("sms.send", "POST", "/sms") == "sms.send"
