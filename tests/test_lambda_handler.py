"""Tests for AWS Lambda handler."""

import base64
import json

import pytest

from lambda_handler import lambda_handler


@pytest.fixture
def preview_payload():
    return {
        "total_course_value": 10000,
        "commission_rate": 0.15,
        "gst_inclusive": True,
        "number_of_installments": 11,
        "payment_frequency": "monthly",
        "first_college_due_date": "2025-02-15",
        "student_lead_time_days": 7,
        "initial_payment_amount": 1000,
        "initial_payment_due_date": "2025-01-15",
        "initial_payment_paid": True,
        "materials_cost": 500,
        "admin_fees": 300,
        "other_fees": 200,
    }


class TestLambdaHandler:
    """Test the Lambda handler routes and responses."""

    def test_health_check(self):
        """GET /health returns healthy status."""
        event = {"httpMethod": "GET", "path": "/health"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["status"] == "healthy"

    def test_api_info(self):
        """GET /api returns API information."""
        event = {"httpMethod": "GET", "path": "/api"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["status"] == "ok"
        assert "endpoints" in body

    def test_cors_preflight(self):
        """OPTIONS requests return CORS headers."""
        event = {"httpMethod": "OPTIONS", "path": "/installments/preview"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        assert "Access-Control-Allow-Origin" in response["headers"]
        assert "Access-Control-Allow-Methods" in response["headers"]

    def test_not_found(self):
        """Unknown paths return 404."""
        event = {"httpMethod": "GET", "path": "/unknown"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 404

    def test_preview_success(self, preview_payload):
        """POST /installments/preview returns installments and summary."""
        event = {"httpMethod": "POST", "path": "/installments/preview", "body": json.dumps(preview_payload)}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert len(body["installments"]) == 12
        assert body["summary"]["expected_commission"] == 1350.0
        assert body["summary"]["amount_per_installment"] == 727.27

    def test_preview_base64_body(self, preview_payload):
        """API Gateway may deliver the body base64 encoded."""
        encoded = base64.b64encode(json.dumps(preview_payload).encode("utf-8")).decode("ascii")
        event = {
            "httpMethod": "POST",
            "path": "/installments/preview",
            "body": encoded,
            "isBase64Encoded": True,
        }
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200

    def test_preview_empty_body(self):
        """POST /installments/preview with empty body returns 400."""
        event = {"httpMethod": "POST", "path": "/installments/preview", "body": ""}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert "error" in body

    def test_preview_invalid_json(self):
        """POST /installments/preview with invalid JSON returns 400."""
        event = {"httpMethod": "POST", "path": "/installments/preview", "body": "not valid json"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert "error" in body

    def test_preview_validation_error(self, preview_payload):
        """Out-of-range fields are reported per field."""
        preview_payload["commission_rate"] = 1.5
        preview_payload["number_of_installments"] = 0

        event = {"httpMethod": "POST", "path": "/installments/preview", "body": json.dumps(preview_payload)}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["status"] == "validation_failed"
        assert {e["field"] for e in body["errors"]} == {"commission_rate", "number_of_installments"}

    def test_preview_domain_error(self, preview_payload):
        """Initial payment larger than the commissionable value returns 400."""
        preview_payload["initial_payment_amount"] = 9500

        event = {"httpMethod": "POST", "path": "/installments/preview", "body": json.dumps(preview_payload)}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["status"] == "domain_validation_failed"

    def test_http_api_format(self):
        """Supports HTTP API v2 event format."""
        event = {"requestContext": {"http": {"method": "GET"}}, "rawPath": "/health"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
