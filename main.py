from flask import Flask, request, jsonify
from flask_cors import CORS
from consortium_engine import SimulationProcessor
import os
import logging

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the CRM front end calls the API from another origin)
CORS(app)

# Initialize the simulation processor
processor = SimulationProcessor()


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Consortium Simulation API",
        "version": "1.0",
        "endpoints": {
            "simulate": "/simulate [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/simulate", methods=["POST"])
def simulate():
    """
    Run a consortium installment and bid simulation
    """
    try:
        # Get input data
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        # Log request
        table_name = (input_data.get("table") or {}).get("table_name") or input_data.get("table_name", "Unknown")
        logger.info(f"Simulating with table: {table_name}")

        result = processor.simulate_from_dict(input_data)

        if result["computable"]:
            logger.info(f"Simulation computed: {table_name}")
        else:
            logger.info(f"Simulation not computable: {result['reason']}")

        return jsonify(result), 200

    except (ValueError, KeyError, TypeError) as e:
        # Malformed payloads
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Simulation error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during simulation",
            "status": "failed"
        }), 500


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
