from datetime import date

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from commission_engine import EngineConfig, InstallmentPreviewBuilder
from commission_engine.exceptions import EngineError, FieldError, StructuralValidationError
from commission_engine.output import OutputBuilder
from commission_engine.persistence import RecalculationService, make_engine, make_session_factory
from commission_engine.validators import InputValidator
import os
import logging

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the wizard UI calls the API from another origin)
CORS(app)

# Initialize the engine
config = EngineConfig.from_env()
builder = InstallmentPreviewBuilder(config)
validator = InputValidator(config)
output = OutputBuilder()
service = RecalculationService(make_session_factory(make_engine()), config)


def _json_body():
    data = request.get_json(force=True, silent=True)
    if not data or not isinstance(data, dict):
        return None
    return data


def _no_input():
    return jsonify({
        "error": "No input data provided",
        "status": "failed"
    }), 400


@app.errorhandler(EngineError)
def handle_engine_error(e):
    """Validation, domain, consistency and lifecycle errors from the engine"""
    logger.error(f"Engine error: {str(e)}")
    return jsonify(output.build_error(e)), output.status_code(e)


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.error(f"Processing error: {str(e)}", exc_info=True)
    return jsonify({
        "error": "An unexpected error occurred during processing",
        "status": "failed"
    }), 500


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Commission & Installment Engine API",
        "version": "1.0",
        "endpoints": {
            "preview": "/installments/preview [POST]",
            "create_plan": "/payment-plans [POST]",
            "get_plan": "/payment-plans/<id> [GET]",
            "update_plan": "/payment-plans/<id> [PATCH]",
            "recalculate": "/payment-plans/<id>/recalculate [POST]",
            "record_payment": "/installments/<id>/record-payment [POST]",
            "reverse_payment": "/installments/<id>/reverse-payment [POST]",
            "cancel": "/installments/<id>/cancel [POST]",
            "mark_overdue": "/installments/mark-overdue [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/installments/preview", methods=["POST"])
def preview_installments():
    """
    Generate a draft installment schedule for the payment plan wizard.
    Nothing is saved.
    """
    input_data = _json_body()
    if input_data is None:
        return _no_input()

    result = builder.build_from_dict(input_data)
    logger.info(
        f"Generated preview: {len(result['installments'])} installments, "
        f"expected commission {result['summary']['expected_commission']}"
    )
    return jsonify(result), 200


@app.route("/payment-plans", methods=["POST"])
def create_payment_plan():
    """Confirm a wizard preview: persist the plan and its installments"""
    input_data = _json_body()
    if input_data is None:
        return _no_input()

    plan_request = validator.parse_preview_request(input_data)
    plan = service.create_plan(plan_request, currency=input_data.get("currency"))
    return jsonify(output.build_plan(plan)), 201


@app.route("/payment-plans/<int:plan_id>", methods=["GET"])
def get_payment_plan(plan_id):
    plan = service.get_plan(plan_id)
    return jsonify(output.build_plan(plan)), 200


@app.route("/payment-plans/<int:plan_id>", methods=["PATCH"])
def update_payment_plan(plan_id):
    """Edit financial fields; derived commission fields are recalculated atomically"""
    input_data = _json_body()
    if input_data is None:
        return _no_input()

    plan = service.update_plan(plan_id, input_data)
    return jsonify(output.build_plan(plan)), 200


@app.route("/payment-plans/<int:plan_id>/recalculate", methods=["POST"])
def recalculate_payment_plan(plan_id):
    service.recalculate_plan(plan_id)
    plan = service.get_plan(plan_id)
    return jsonify(output.build_plan(plan, include_installments=False)), 200


@app.route("/installments/<int:installment_id>/record-payment", methods=["POST"])
def record_payment(installment_id):
    """
    Record a payment received for an installment.
    Status becomes paid or partial; earned commission is recalculated.
    """
    input_data = _json_body()
    if input_data is None:
        return _no_input()

    recording = validator.parse_payment_recording(input_data)
    logger.info(f"Recording payment for installment {installment_id}")
    installment, plan = service.record_payment(installment_id, recording)

    return jsonify({
        "installment": output.build_installment(installment),
        "payment_plan": output.build_plan(plan, include_installments=False)
    }), 200


@app.route("/installments/<int:installment_id>/reverse-payment", methods=["POST"])
def reverse_payment(installment_id):
    installment, plan = service.reverse_payment(installment_id)
    return jsonify({
        "installment": output.build_installment(installment),
        "payment_plan": output.build_plan(plan, include_installments=False)
    }), 200


@app.route("/installments/<int:installment_id>/cancel", methods=["POST"])
def cancel_installment(installment_id):
    installment, plan = service.cancel_installment(installment_id)
    return jsonify({
        "installment": output.build_installment(installment),
        "payment_plan": output.build_plan(plan, include_installments=False)
    }), 200


@app.route("/installments/mark-overdue", methods=["POST"])
def mark_overdue():
    """Scheduled sweep: pending installments past their student due date become overdue"""
    input_data = request.get_json(force=True, silent=True)
    if input_data is None:
        input_data = {}
    elif not isinstance(input_data, dict):
        return _no_input()
    today = date.today()
    if input_data.get("today"):
        try:
            today = date.fromisoformat(input_data["today"])
        except (TypeError, ValueError):
            raise StructuralValidationError([FieldError("today", "Invalid date format for today")])

    updated = service.mark_overdue(today)
    return jsonify({"status": "ok", "updated_count": updated}), 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
