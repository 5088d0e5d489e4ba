"""
AWS Lambda handler for the Consortium Simulation API.

Serves the same routes as main.py behind API Gateway (REST and HTTP API v2
event formats). For local development, use main.py (Flask app) instead.
"""

import base64
import json
import logging
import os

from consortium_engine import SimulationProcessor

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

# Stateless, reused across warm invocations
processor = SimulationProcessor()

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


class BadRequest(Exception):
    """Request body could not be turned into a simulation payload."""


def _response(status_code, body=None):
    return {
        "statusCode": status_code,
        "headers": CORS_HEADERS,
        "body": "" if body is None else json.dumps(body),
    }


def _method_and_path(event):
    http = event.get("requestContext", {}).get("http", {})
    method = event.get("httpMethod") or http.get("method", "")
    path = event.get("path") or event.get("rawPath", "")
    return method.upper(), path


def _payload(event):
    """Decode the event body into a dict."""
    body = event.get("body")
    if isinstance(body, dict):
        return body
    if not body:
        raise BadRequest("No input data provided")

    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise BadRequest(f"Invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise BadRequest("Simulation payload must be a JSON object")
    return payload


def handle_health(event):
    return _response(200, {"status": "healthy", "environment": ENVIRONMENT})


def handle_api_info(event):
    return _response(200, {
        "status": "ok",
        "message": "Consortium Simulation API",
        "version": "1.0",
        "environment": ENVIRONMENT,
        "runtime": "AWS Lambda",
        "endpoints": {"simulate": "/simulate [POST]", "health": "/health [GET]"},
    })


def handle_simulate(event):
    """
    Run one simulation.

    Not computable inputs are a normal 200 response; only payloads the engine
    cannot parse are rejected with 400.
    """
    try:
        payload = _payload(event)
    except BadRequest as e:
        logger.warning(f"Rejected simulation request: {e}")
        return _response(400, {"error": str(e), "status": "failed"})

    try:
        result = processor.simulate_from_dict(payload)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Validation error: {e}")
        return _response(400, {"error": f"Validation error: {e}", "status": "validation_failed"})

    if result["computable"]:
        logger.info(f"Simulation computed for month {payload['input'].get('contemplation_month')}")
    else:
        logger.info(f"Simulation not computable: {result['reason']}")
    return _response(200, result)


ROUTES = {
    ("GET", "/health"): handle_health,
    ("GET", "/api"): handle_api_info,
    ("POST", "/simulate"): handle_simulate,
}


def lambda_handler(event, context):
    """Main Lambda entry point."""
    method, path = _method_and_path(event)

    # CORS preflight
    if method == "OPTIONS":
        return _response(200)

    handler = ROUTES.get((method, path))
    if handler is None:
        return _response(404, {"error": "Not found", "path": path})

    try:
        return handler(event)
    except Exception as e:
        # Log details but return a generic message
        logger.error(f"Unexpected error on {method} {path}: {e}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during simulation", "status": "failed"})
